"""Resource orchestration core: resources, modules, drivers and their APIs."""

__version__ = "0.1.0"