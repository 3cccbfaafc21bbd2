# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Framework Integrations - FastAPI admin plugin.
"""

from dumpvault.integrations.fastapi import (
    dumpvault_lifespan,
    get_orchestrator,
    register_dumpvault_routes,
    setup_dumpvault_plugin,
    verify_api_key,
)

__all__ = [
    "setup_dumpvault_plugin",
    "register_dumpvault_routes",
    "dumpvault_lifespan",
    "get_orchestrator",
    "verify_api_key",
]
