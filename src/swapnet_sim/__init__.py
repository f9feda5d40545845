"""SwapNet — digital twin of a city-scale battery-swap network."""

__version__ = "0.1.0"
