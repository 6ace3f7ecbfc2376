"""Health checks, private-network lookups and supervised child processes for NATS on Fly.io."""

__version__ = "0.1.0"