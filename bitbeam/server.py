import uvicorn

from bitbeam.config import load_config


def run() -> None:
    config = load_config()
    uvicorn.run(
        "bitbeam.main:create_app",
        factory=True,
        host=config.listener_addr,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    run()
