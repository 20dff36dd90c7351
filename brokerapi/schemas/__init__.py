from .balance import BalanceResponse, BalanceAdjustmentResponse
from .transaction import TransactionEntry, TransactionHistoryResponse
from .position import PlanResponse, PositionResponse
from .distribution import DistributionRunResult, ProfitDistributionEntry
