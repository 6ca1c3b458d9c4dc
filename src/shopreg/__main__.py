import argparse
import logging
import threading

import uvicorn

from shopreg import __version__
from shopreg.config import load_config
from shopreg.oracle import build_oracle
from shopreg.schemas import User
from shopreg.store import RecordStore


def main() -> None:
    config = load_config()
    server_config = config["server"]
    user_port = int(server_config["user_port"])
    order_port = int(server_config["order_port"])
    logging.basicConfig(level=logging.INFO, format=config["logging"]["format"])

    parser = argparse.ArgumentParser(description="shopreg - User & Order registry API")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", default=server_config["host"], help="Bind host")
    parser.add_argument(
        "--service",
        choices=("users", "orders", "all"),
        default="all",
        help=f"Run users ({user_port}), orders ({order_port}), or both",
    )
    args = parser.parse_args()

    if args.service == "all":
        from shopreg import order_service, user_service

        user_store: RecordStore[User] = RecordStore(User)
        user_app = user_service.create_app(user_store=user_store, config=config)
        order_app = order_service.create_app(oracle=build_oracle(config, user_store=user_store), config=config)

        def run_users() -> None:
            uvicorn.run(user_app, host=args.host, port=user_port)

        def run_orders() -> None:
            uvicorn.run(order_app, host=args.host, port=order_port)

        user_thread = threading.Thread(target=run_users, daemon=True)
        order_thread = threading.Thread(target=run_orders, daemon=True)
        user_thread.start()
        order_thread.start()
        logging.info("user server: http://%s:%s", args.host, user_port)
        logging.info("order server: http://%s:%s (oracle mode %s)", args.host, order_port, config["oracle"]["mode"])
        user_thread.join()
        order_thread.join()
    elif args.service == "users":
        from shopreg.user_service import create_app

        uvicorn.run(create_app(config=config), host=args.host, port=user_port)
    else:
        from shopreg.order_service import create_app

        uvicorn.run(create_app(config=config), host=args.host, port=order_port)


if __name__ == "__main__":
    main()
