import logging.config
import sys

SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s"
DETAILED_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(pathname)s:%(lineno)d\n%(message)s"


def build_logging_config(log_level: str = "INFO") -> dict:
    """
    stdout: 전체 로그 (simple)
    stderr: WARNING 이상 (detailed, 파일/라인 포함)

    brokerapi.* 모듈 로거는 모두 "brokerapi" 로거로 모입니다.
    """
    level = log_level.upper()
    app_handlers = ["console", "error_console"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {"format": SIMPLE_FORMAT},
            "detailed": {"format": DETAILED_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "stream": sys.stdout,
            },
            "error_console": {
                "class": "logging.StreamHandler",
                "formatter": "detailed",
                "stream": sys.stderr,
                "level": "WARNING",
            },
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "brokerapi": {"handlers": app_handlers, "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
            # SQL 로그는 DEBUG=True 인 엔진 echo 로만
            "sqlalchemy.engine": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        },
    }


def setup_logging(log_level: str = "INFO"):
    logging.config.dictConfig(build_logging_config(log_level))
