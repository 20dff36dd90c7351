"""
수익 지급 크론 작업

    python scripts/run_profit_distribution.py [--kind investment|live_trade]

같은 기간은 한 번만 지급되므로 크론 주기가 겹쳐도 안전합니다.
실패한 포지션이 있으면 종료 코드 1 을 반환합니다.
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import logging

from dotenv import load_dotenv

from brokerapi.config import settings
from brokerapi.containers import Container
from brokerapi.logging_config import setup_logging

logger = logging.getLogger("brokerapi.scripts.run_profit_distribution")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Distribute pending position profits")
    parser.add_argument("--kind", choices=["investment", "live_trade"], default=None)
    args = parser.parse_args(argv)

    load_dotenv("brokerapi/.env")
    setup_logging(settings.LOG_LEVEL)

    container = Container()
    container.init_resources()
    try:
        service = container.services.profit_distribution_service()
        result = service.distribute_pending_profits(kind=args.kind)
    finally:
        container.shutdown_resources()

    logger.info(
        f"Processed {result.processed_count} periods, distributed {result.total_amount}, "
        f"completed {result.completed_count} positions"
    )
    for failure in result.failures:
        logger.error(f"Position {failure.position_id} failed: {failure.error}")
    return 1 if result.failed_count else 0


if __name__ == "__main__":
    sys.exit(main())
