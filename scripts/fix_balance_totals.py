"""
total_balance 불일치 보정 스크립트

    python scripts/fix_balance_totals.py           # 검증만
    python scripts/fix_balance_totals.py --apply   # 검증 후 일괄 보정
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse

from brokerapi.database.session import get_db_context
from brokerapi.services.balance_service import BalanceService


def fix_balance_totals(apply: bool = False) -> int:
    with get_db_context() as db:
        service = BalanceService(db)
        report = service.check_integrity()

        if report.status == "OK":
            print("✅ 모든 사용자의 total_balance 가 하위 잔액 합계와 일치합니다")
            return 0

        print(f"⚠️  불일치 사용자 {report.discrepancy_count}명")
        for item in report.discrepancies:
            print(
                f"   user {item.user_id}: stored={item.stored_total} "
                f"calculated={item.calculated_total} diff={item.discrepancy}"
            )

        if not apply:
            print("--apply 옵션으로 보정을 실행하세요")
            return report.discrepancy_count

        repaired = service.repair_all_totals()
        print(f"✅ {repaired.repaired_count}명 보정 완료")
        return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Recalculate drifted total balances")
    parser.add_argument("--apply", action="store_true")
    args = parser.parse_args()
    sys.exit(1 if fix_balance_totals(apply=args.apply) else 0)
