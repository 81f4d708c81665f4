"""stashlens — Bitbucket Server pull-request review client."""

__version__ = "0.1.0"
