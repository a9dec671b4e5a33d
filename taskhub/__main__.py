import os

import uvicorn

import taskhub.config as _cfg
from taskhub.logging_setup import setup_logging


def main() -> None:
    setup_logging(level=_cfg.LOG_LEVEL, log_dir=_cfg.LOG_DIR)
    uvicorn.run(
        "taskhub.main:create_app",
        factory=True,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", 8000)),
        log_config=None,
    )


if __name__ == "__main__":
    main()
