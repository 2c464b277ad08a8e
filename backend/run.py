"""
Serve the Step Gate API (workflow steps, dependency gating, completion checks).

Usage:
    python run.py
    python run.py --reload            # Development mode with auto-reload
    python run.py --port 8080         # Custom port
    python run.py --log-level debug   # Override LOG_LEVEL for uvicorn

MongoDB, JWT and role settings are read from the environment / .env
(see stepgate/config/settings.py).
"""
import argparse
import uvicorn

from stepgate.config.settings import settings


def main():
    parser = argparse.ArgumentParser(
        description="Serve the Step Gate API: ticket workflow steps, dependency gating and completion checks"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Interface for the step API to listen on (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the step API (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart on source changes under stepgate/ (development only)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes sharing the MongoDB store (default: 1, ignored with --reload)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level.lower(),
        choices=["critical", "error", "warning", "info", "debug"],
        help=f"uvicorn log level (default: LOG_LEVEL, currently {settings.log_level.lower()})"
    )

    args = parser.parse_args()

    print("Starting Step Gate API...")
    print(f"  Environment: {settings.environment}")
    print(f"  MongoDB: {settings.mongo_db}")
    print(f"  Listening on: http://{args.host}:{args.port}/api/v1")
    print(f"  Reload: {args.reload}")
    if not args.reload and args.workers > 1:
        print(f"  Workers: {args.workers}")
    print()

    uvicorn.run(
        "stepgate.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=["stepgate"] if args.reload else None,
        workers=1 if args.reload else args.workers,
        log_level=args.log_level
    )


if __name__ == "__main__":
    main()
