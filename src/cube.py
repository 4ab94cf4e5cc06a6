import random

import numpy as np

FACES = "URFDLB"
# Outward normal of each face; x points to R, y to U, z to F.
FACE_NORMALS = {
    'U': (0, 1, 0),
    'R': (1, 0, 0),
    'F': (0, 0, 1),
    'D': (0, -1, 0),
    'L': (-1, 0, 0),
    'B': (0, 0, -1),
}
TWIST_SUFFIXES = ["", "'", "2"]
TWIST_LIST = [face + suffix for face in FACES for suffix in TWIST_SUFFIXES]
STICKERS_PER_FACE = 9
STICKER_COUNT = STICKERS_PER_FACE * len(FACES)
COLOR_COUNT = len(FACES)
CENTER = 4


def _rotate(v, axis, turns):
    """Rotate an integer vector by `turns` counter-clockwise quarter turns about `axis`."""
    x, y, z = v
    for _ in range(turns % 4):
        if axis == 0:
            x, y, z = x, -z, y
        elif axis == 1:
            x, y, z = z, y, -x
        else:
            x, y, z = -y, x, z
    return (x, y, z)


def _face_axis(face):
    normal = FACE_NORMALS[face]
    axis = next(i for i, c in enumerate(normal) if c != 0)
    return axis, normal[axis]


def _sticker_layout():
    layout = []
    for face in FACES:
        normal = FACE_NORMALS[face]
        axis, sign = _face_axis(face)
        first, second = [i for i in range(3) if i != axis]
        for a in (-1, 0, 1):
            for b in (-1, 0, 1):
                pos = [0, 0, 0]
                pos[axis] = sign
                pos[first] = a
                pos[second] = b
                layout.append((tuple(pos), normal))
    return layout


def _build_twist_permutations():
    layout = _sticker_layout()
    index = {sticker: i for i, sticker in enumerate(layout)}
    perms = {}
    for face in FACES:
        axis, sign = _face_axis(face)
        # Clockwise as seen from outside the face.
        turns = 3 if sign > 0 else 1
        quarter = np.arange(STICKER_COUNT)
        for i, (pos, normal) in enumerate(layout):
            if pos[axis] != sign:
                continue
            j = index[(_rotate(pos, axis, turns), _rotate(normal, axis, turns))]
            quarter[j] = i
        half = quarter[quarter]
        perms[face] = quarter
        perms[face + "2"] = half
        perms[face + "'"] = half[quarter]
    return perms


TWIST_PERMUTATIONS = _build_twist_permutations()


def inverse_twist(twist):
    if twist not in TWIST_PERMUTATIONS:
        raise ValueError(f"Invalid twist: {twist!r}")
    if twist.endswith("2"):
        return twist
    if twist.endswith("'"):
        return twist[0]
    return twist + "'"


class Cube:
    def __init__(self, stickers=None):
        if stickers is None:
            self.stickers = self._create_solved_stickers()
        else:
            raw = np.asarray(stickers, dtype=np.int64).reshape(-1)
            self._validate(raw)
            self.stickers = raw.astype(np.int8)

    @staticmethod
    def _create_solved_stickers():
        return np.repeat(np.arange(COLOR_COUNT, dtype=np.int8), STICKERS_PER_FACE)

    @staticmethod
    def _validate(raw):
        if raw.size != STICKER_COUNT:
            raise ValueError(f"Expected {STICKER_COUNT} stickers, got {raw.size}")
        if raw.min() < 0 or raw.max() >= COLOR_COUNT:
            raise ValueError(f"Sticker colours must lie in [0, {COLOR_COUNT})")
        counts = np.bincount(raw, minlength=COLOR_COUNT)
        if np.any(counts != STICKERS_PER_FACE):
            raise ValueError(f"Each colour must appear {STICKERS_PER_FACE} times, got {counts.tolist()}")
        centers = raw.reshape((COLOR_COUNT, STICKERS_PER_FACE))[:, CENTER]
        if len(set(centers.tolist())) != COLOR_COUNT:
            raise ValueError("Face centres must all have distinct colours")

    def faces(self):
        return self.stickers.reshape((COLOR_COUNT, STICKERS_PER_FACE))

    def is_solved(self):
        faces = self.faces()
        return bool(np.all(faces == faces[:, CENTER:CENTER + 1]))

    def get_legal_moves(self):
        # Every twist is always legal; the order is fixed.
        return list(TWIST_LIST)

    def move(self, twist):
        perm = TWIST_PERMUTATIONS.get(twist)
        if perm is None:
            raise ValueError(f"Invalid twist: {twist!r}")
        cube = Cube.__new__(Cube)
        cube.stickers = self.stickers[perm]
        return cube

    def apply_twists(self, twists):
        current = self
        for twist in twists:
            current = current.move(twist)
        return current

    def shuffle(self, steps=20, rng=None):
        """Scramble with `steps` random twists, never turning the same face twice in a row."""
        rng = rng or random
        current = self
        scramble = []
        for _ in range(steps):
            choices = [t for t in TWIST_LIST if not scramble or t[0] != scramble[-1][0]]
            twist = rng.choice(choices)
            scramble.append(twist)
            current = current.move(twist)
        return current, scramble

    def misplaced_stickers(self):
        faces = self.faces()
        return int(np.sum(faces != faces[:, CENTER:CENTER + 1]))

    def to_array(self):
        return self.stickers.copy()

    def to_hashable(self):
        return self.stickers.tobytes()

    def to_one_hot(self):
        one_hot = np.zeros((STICKER_COUNT, COLOR_COUNT), dtype=np.float32)
        one_hot[np.arange(STICKER_COUNT), self.stickers] = 1.0
        return one_hot.reshape(-1)

    def __eq__(self, other):
        return isinstance(other, Cube) and np.array_equal(self.stickers, other.stickers)

    def __hash__(self):
        return hash(self.to_hashable())

    def __str__(self):
        return "\n".join(
            f"{face}: {''.join(str(c) for c in row)}" for face, row in zip(FACES, self.faces())
        )
