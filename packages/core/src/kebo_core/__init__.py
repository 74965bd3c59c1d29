"""Kebo Core - Sales reconciliation and financial reports for a vehicle store."""

__version__ = "0.1.0"

from .aggregation import DateRange, summarize
from .installments import generate_schedule
from .models import EnrichedSaleView, ExpenseRecord, FinancialReport, SaleRecord
from .reconciler import SaleReconciler, build_enriched_view
from .reference_index import ReferenceIndex, build_reference_index
from .report import FinancialReportBuilder

__all__ = [
    "DateRange",
    "summarize",
    "generate_schedule",
    "EnrichedSaleView",
    "ExpenseRecord",
    "FinancialReport",
    "SaleRecord",
    "SaleReconciler",
    "build_enriched_view",
    "ReferenceIndex",
    "build_reference_index",
    "FinancialReportBuilder",
]
