# homelab_dash/deps.py
import httpx
from fastapi import Request

from .utils.tokens import TokenCaches


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_pve_client(request: Request) -> httpx.AsyncClient:
    """Client for the Proxmox API, which usually serves a self-signed cert."""
    return request.app.state.pve_client


def get_token_caches(request: Request) -> TokenCaches:
    return request.app.state.tokens
