#!/usr/bin/env python3
"""
CloudNativePG Pod Specs MCP Server

Exposes the instance Pod builders as read-only MCP tools, so a client can
preview the Pod the operator would create for a cluster instance in any
role. The server never contacts a Kubernetes cluster.

Transport Modes:
- stdio: Communication over stdin/stdout (default, for Claude Desktop)
- http: HTTP server at /mcp, with /healthz and /readyz for Kubernetes probes
"""

import argparse
import asyncio
import logging
import os
import sys

import uvicorn
from fastmcp import FastMCP
from starlette.responses import JSONResponse

from cnpg_pods.tools import describe_instance_pod, render_instance_pod

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s:     %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)

# Set log levels for external libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

# ============================================================================
# FastMCP Server Initialization
# ============================================================================

mcp = FastMCP("cnpg-pod-specs")


@mcp.tool(name="render_instance_pod")
async def render_instance_pod_tool(
    cluster_manifest: str,
    node_serial: int,
    role: str = "primary",
    output_format: str = "yaml"
):
    """Render the Pod manifest for one PostgreSQL instance (primary, replica or existing-storage)."""
    return render_instance_pod(cluster_manifest, node_serial, role, output_format)


@mcp.tool(name="describe_instance_pod")
async def describe_instance_pod_tool(
    cluster_manifest: str,
    node_serial: int,
    role: str = "primary"
):
    """Summarize the Pod for one PostgreSQL instance: role, init containers, storage, probes, affinity."""
    return describe_instance_pod(cluster_manifest, node_serial, role)


# ============================================================================
# Health Check Endpoints
# ============================================================================

async def liveness_check(request):
    """Kubernetes liveness probe endpoint."""
    return JSONResponse({"status": "alive"})


async def readiness_check(request):
    """Kubernetes readiness probe endpoint."""
    return JSONResponse({"status": "ready"})


# ============================================================================
# Transport Implementations
# ============================================================================

async def run_stdio_transport():
    """Run server in stdio mode (for Claude Desktop)."""
    logger.info("Serving CloudNativePG pod specs over stdio")

    await mcp.run_stdio_async()


def run_http_transport(host: str, port: int):
    """Run server in HTTP mode."""
    app = mcp.http_app(transport="http", path="/mcp")

    app.add_route("/healthz", liveness_check)
    app.add_route("/readyz", readiness_check)

    logger.info(f"Serving MCP at http://{host}:{port}/mcp (health: /healthz, /readyz)")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info"
    )


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main entry point with transport selection."""
    parser = argparse.ArgumentParser(
        description="CloudNativePG Pod Specs MCP Server"
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport mode: stdio (default) or http"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Port for HTTP transport (default: 3000)"
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host for HTTP transport (default: 0.0.0.0)"
    )

    args = parser.parse_args()

    if args.transport == "stdio":
        asyncio.run(run_stdio_transport())
    else:
        run_http_transport(args.host, args.port)


if __name__ == "__main__":
    main()
