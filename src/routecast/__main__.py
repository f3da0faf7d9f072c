from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "routecast.main:app",
        host=os.environ.get("ROUTECAST_HOST", "127.0.0.1"),
        port=int(os.environ.get("ROUTECAST_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
