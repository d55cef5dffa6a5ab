"""
Identity Verification Backend — Uvicorn Launcher
Run this file to start the development server.

Usage:
    python run.py
    python run.py --port 5000
    python run.py --reload
"""
import argparse
import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Identity Verification Backend Server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=5000, help="Bind port (default: 5000)")
    parser.add_argument("--reload", action="store_true", help="Enable hot reload for development")

    args = parser.parse_args()

    print(f"""
    ========================================================
      Identity Verification -- Backend Server
      API:      http://{args.host}:{args.port}
      Docs:     http://localhost:{args.port}/docs
      Webhook:  http://localhost:{args.port}/webhook
    ========================================================
    """)

    # Single worker: the embedded SQLite store has one writer at a time
    uvicorn.run(
        "idverify.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1,
        log_level="info",
    )


if __name__ == "__main__":
    main()
