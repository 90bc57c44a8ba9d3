"""Command-line tooling (typer): `nftmarket config | quote | demo | serve`."""

from .main import app

__all__ = ["app"]
