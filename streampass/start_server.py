#!/usr/bin/env python3
"""
Server startup wrapper - runs the StreamPass API under uvicorn.
"""
import os
import sys


def main() -> None:
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    print("[StreamPass] Starting StreamPass service")
    print(f"[StreamPass] Server: http://localhost:{port}")
    print("[StreamPass] Press CTRL+C to stop")
    try:
        uvicorn.run(
            "streampass.main:app",
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            reload=False,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[StreamPass] Shutting down...")
        sys.exit(0)


if __name__ == "__main__":
    main()
