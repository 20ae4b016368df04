#!/usr/bin/env python3
"""
Start the BillBiopsy API on this machine.

Usage:
    python backend/run_local.py [--port 8000] [--no-reload]

Bill uploads need OPENAI_API_KEY; complaint letters and voice notes use
GROQ_API_KEY when it is set. Without keys, /api/audit, /api/history and
/api/rate-card still work.
"""

import argparse
import os
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BACKEND_DIR.parent

# ml/ lives beside backend/
for path in (PROJECT_ROOT, BACKEND_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


def _key_status(name: str) -> str:
    return "configured" if os.getenv(name) else "missing"


def main():
    parser = argparse.ArgumentParser(description="Run the BillBiopsy API locally")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    os.environ.setdefault("DEBUG", "true")

    base_url = f"http://{args.host}:{args.port}"
    print("BillBiopsy local server")
    print(f"  Docs:        {base_url}/docs")
    print(f"  Audit API:   {base_url}/api/audit")
    print(f"  Metrics:     {base_url}/metrics")
    print(f"  OpenAI key:  {_key_status('OPENAI_API_KEY')}")
    print(f"  Groq key:    {_key_status('GROQ_API_KEY')}")
    print()

    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        reload_dirs=[str(BACKEND_DIR / "app"), str(PROJECT_ROOT / "ml")],
        app_dir=str(BACKEND_DIR),
    )


if __name__ == "__main__":
    main()
