"""Projectile launcher: materialize a booster, provision a Git repository,
register a webhook and trigger a deployment."""

__version__ = "0.1.0"
