#!/usr/bin/env python
"""
Run the Pokémon VGC API server.

Usage:
    python run_api.py
    python run_api.py --reload  # Development mode
"""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Run Pokémon VGC API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=3000, help="Port to bind to")
    args = parser.parse_args()

    uvicorn.run(
        "web_api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
