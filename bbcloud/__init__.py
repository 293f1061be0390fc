"""Client for the Bitbucket Cloud REST API: the HTTP layer and pull request endpoints."""

__version__ = "0.1.0"

__all__ = ["client", "pullrequests"]