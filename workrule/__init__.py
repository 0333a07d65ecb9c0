# WorkRule - Hierarchical policy resolution and compliance engine

__version__ = "0.1.0"
