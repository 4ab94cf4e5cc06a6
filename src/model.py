import torch
import torch.nn as nn

from cube import COLOR_COUNT, STICKER_COUNT

INPUT_DIM = STICKER_COUNT * COLOR_COUNT  # one-hot stickers


class CostToGoNet(nn.Module):
    """Regresses the number of twists left to solve a cube from its one-hot stickers."""

    def __init__(self, input_dim=INPUT_DIM, hidden_dim=256):
        super().__init__()
        self.net = nn.Sequential(
            nn.Linear(input_dim, hidden_dim),
            nn.ReLU(),
            nn.Linear(hidden_dim, hidden_dim),
            nn.ReLU(),
            nn.Linear(hidden_dim, 1)
        )

    def forward(self, x):
        return self.net(x)


class UncertainCostNet(nn.Module):
    def __init__(self, input_dim=INPUT_DIM, hidden_dim=64, dropout_rate=0.025):
        super().__init__()
        self.fc1 = nn.Linear(input_dim, hidden_dim)
        self.fc2 = nn.Linear(hidden_dim, 2)  # Output: mean and log variance
        self.dropout = nn.Dropout(dropout_rate)

        # He Normal initialization
        nn.init.kaiming_normal_(self.fc1.weight, mode='fan_in', nonlinearity='relu')
        nn.init.zeros_(self.fc1.bias)
        nn.init.kaiming_normal_(self.fc2.weight, mode='fan_in', nonlinearity='relu')
        nn.init.zeros_(self.fc2.bias)

    def forward(self, x):
        x = torch.relu(self.fc1(x))
        x = self.dropout(x)
        return self.fc2(x)

    def predict_with_uncertainty(self, x, n_samples=100):
        """Monte Carlo dropout estimate.

        Returns (mean, aleatoric_std, epistemic_std), each of shape [batch_size].
        """
        was_training = self.training
        self.train()  # keep dropout active while sampling
        try:
            with torch.no_grad():
                outputs = torch.stack([self(x) for _ in range(n_samples)])  # [n_samples, batch_size, 2]
        finally:
            self.train(was_training)
        means = outputs[:, :, 0]
        log_vars = outputs[:, :, 1]

        mean = means.mean(dim=0)
        aleatoric_std = torch.sqrt(torch.exp(log_vars).mean(dim=0))
        if n_samples > 1:
            epistemic_std = means.std(dim=0)
        else:
            epistemic_std = torch.zeros_like(mean)
        return mean, aleatoric_std, epistemic_std


MODEL_KINDS = {
    'network': CostToGoNet,
    'uncertainty': UncertainCostNet,
}


def load_state_dict_model(kind, path, device=None):
    """Build a model of `kind` and load weights saved with `torch.save(model.state_dict(), path)`."""
    device = device or torch.device('cpu')
    model = MODEL_KINDS[kind]()
    model.load_state_dict(torch.load(path, map_location=device, weights_only=True))
    model.to(device)
    model.eval()
    return model
