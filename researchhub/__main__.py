"""Entry point for running researchhub as a module or installed script.

Usage:
    researchhub / python -m researchhub            → HTTP API (uvicorn)
    researchhub --user U <command> ... → CLI
"""

import sys

import uvicorn


def run() -> None:
    """Entry point: no args → API server, else → CLI."""
    if len(sys.argv) == 1:
        uvicorn.run("researchhub.api.app:app", host="127.0.0.1", port=8000)
    else:
        from researchhub.cli import main
        main()


if __name__ == "__main__":
    run()
