"""Utility helpers for the series tracker."""

from __future__ import annotations

import socket


def find_available_port(host: str, start: int, end: int) -> int | None:
    """Return the first port in ``start..end`` that can be bound, if any."""

    for port in range(start, end + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
            except OSError:
                continue
            return port
    return None
