"""SSH CA API用Blueprint"""
from __future__ import annotations

from flask import Blueprint

sshca_api_bp = Blueprint("sshca_api", __name__)

from . import routes  # noqa: E402,F401

__all__ = ["sshca_api_bp"]
