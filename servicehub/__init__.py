"""ServiceHub - multi-tenant service business operations API with an event-driven automation core"""

__version__ = "1.0.0"
