"""
Run the OKProxy service with uvicorn.

Usage: python -m okproxy
"""
import uvicorn

from okproxy.config import get_config


def main() -> None:
    config = get_config()
    uvicorn.run("okproxy.main:app", host=config.okproxy_host, port=config.okproxy_port)


if __name__ == "__main__":
    main()
