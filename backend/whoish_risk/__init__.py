"""WHO/ISH and WHO 2019 cardiovascular risk chart lookup."""

__version__ = "0.1.0"
