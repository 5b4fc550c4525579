from .client import ProbeClient, ProbeError

__all__ = ["ProbeClient", "ProbeError"]
