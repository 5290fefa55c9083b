"""cmdreply CLI bootstrap."""

from __future__ import annotations

from cmdreply.cli import app

if __name__ == "__main__":
    app()
