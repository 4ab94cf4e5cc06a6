import numpy as np
import pytest

from heuristic_oracle import HeuristicOracle


class GraphState:
    """State of a small explicit puzzle graph; unknown (state, move) pairs stay put."""

    def __init__(self, name, graph):
        self.name = name
        self.graph = graph

    def get_legal_moves(self):
        return list(self.graph['moves'])

    def move(self, m):
        return GraphState(self.graph['edges'].get((self.name, m), self.name), self.graph)

    def is_solved(self):
        return self.name in self.graph['goals']

    def to_hashable(self):
        return self.name

    def to_one_hot(self):
        one_hot = np.zeros(len(self.graph['states']), dtype=np.float32)
        one_hot[self.graph['states'].index(self.name)] = 1.0
        return one_hot


def make_graph(edges, moves, goals):
    states = sorted({s for s, _ in edges} | set(edges.values()) | set(goals))
    return {'edges': edges, 'moves': moves, 'goals': set(goals), 'states': states}


class TableOracle(HeuristicOracle):
    """Looks estimates up by state name and counts its calls and releases."""

    def __init__(self, graph, table=None, default=1.0):
        super().__init__()
        self.graph = graph
        self.table = table or {}
        self.default = default
        self.calls = []
        self.releases = 0

    def predict(self, batch, batch_size):
        names = [self.graph['states'][i] for i in batch.argmax(axis=1)]
        self.calls.append(names)
        return np.array([self.table.get(n, self.default) for n in names])

    def release(self):
        self.releases += 1


@pytest.fixture
def ab_graph():
    """start -A-> x -B-> goal, with the reverse moves leading back."""
    edges = {
        ('start', 'A'): 'x',
        ('start', 'B'): 'y',
        ('x', 'A'): 'start',
        ('x', 'B'): 'goal',
        ('y', 'A'): 'start',
    }
    return make_graph(edges, ['A', 'B'], ['goal'])


@pytest.fixture
def dead_end_graph():
    edges = {
        ('start', 'A'): 'x',
        ('x', 'A'): 'y',
        ('y', 'B'): 'start',
    }
    return make_graph(edges, ['A', 'B'], ['goal'])


@pytest.fixture
def grid_graph():
    """5x5 grid walked with U/D/L/R, goal in the far corner."""
    edges = {}
    steps = {'U': (0, 1), 'D': (0, -1), 'L': (-1, 0), 'R': (1, 0)}
    for x in range(5):
        for y in range(5):
            for m, (dx, dy) in steps.items():
                nx, ny = x + dx, y + dy
                if 0 <= nx < 5 and 0 <= ny < 5:
                    edges[(f"{x},{y}", m)] = f"{nx},{ny}"
    return make_graph(edges, list(steps), ['4,4'])
