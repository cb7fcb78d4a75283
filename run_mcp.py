#!/usr/bin/env python3
"""
MCP server development runner.
For local development only - reads credentials from ./.env and reloads on change.
"""

import os
import sys
from pathlib import Path

# Add src to path
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir / "src"))
os.chdir(root_dir)

# Load .env file if it exists (values take priority over defaults)
from dotenv import load_dotenv

env_file = root_dir / ".env"
if env_file.exists():
    load_dotenv(env_file)
    print(f"Loaded config from {env_file}")

os.environ.setdefault("ENVIRONMENT", "development")

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "3000"))
    print("Starting travel expense MCP server...")
    print(f"Concur API: {os.getenv('CONCUR_BASE_URL', 'https://us2.api.concursolutions.com')}")
    print(f"TripIt tools: {'enabled' if os.getenv('TRIPIT_ACCESS_TOKEN') else 'disabled'}")
    print(f"MCP endpoint: http://localhost:{port}/mcp")
    print("")
    print("Test with MCP Inspector:")
    print(f"   npx @modelcontextprotocol/inspector http://localhost:{port}/mcp")

    uvicorn.run(
        "travel_expense_mcp.server:get_app",
        host="0.0.0.0",
        port=port,
        reload=True,
        reload_dirs=["src"],
        log_level="info",
        factory=True,
    )
