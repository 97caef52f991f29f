"""targetindex: indexes the indirect access granted by nodes and roles."""

__version__ = "0.1.0"
