"""Entry point for serving the Carline Explorer API.

Usage:
    python run_server.py --port 8000 --data-file /path/to/catalog.txt
"""

import argparse
import os


def main() -> None:
    parser = argparse.ArgumentParser(description="Carline Explorer backend")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Interface to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--data-file", type=str, default=None, help="Catalog data file")
    parser.add_argument("--persist", action="store_true", help="Write the catalog back after each add")
    parser.add_argument("--web-dir", type=str, default=None, help="Path to built web app")
    args = parser.parse_args()

    if args.data_file:
        os.environ["CARLINE_DATA_FILE"] = args.data_file
    if args.persist:
        os.environ["CARLINE_PERSIST"] = "true"
    if args.web_dir:
        os.environ["CARLINE_WEB_DIR"] = args.web_dir

    import uvicorn
    from carline.main import app

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
