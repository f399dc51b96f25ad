"""Resource models, an in-memory resource store, reconcilers, agent configuration and a file server for bare-metal hosts."""

__version__ = "0.1.0"