"""Data mapper for converting raw store documents into canonical records.

The store's documents were written by several screens over the years, so
the same logical field shows up under different names (``cpf`` vs
``clienteCPF``, ``placa`` vs ``placaFinal``, vehicle data at the top level
or nested under ``adicionais``). This module is the only place that knows
those variants; everything past it works with the models in
``kebo_core.models``.

Single-record functions raise RecordMappingError for input they cannot
read at all. Collection functions skip such records, log them, and report
how many were dropped.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

import structlog
from pydantic import ValidationError

from .exceptions import RecordMappingError
from .models import (
    ContactOverride,
    CustomerProfile,
    ExpenseRecord,
    LegacyContractProfile,
    SaleRecord,
    VehicleProfile,
    VehicleSummary,
)
from .normalization import first_non_empty, is_empty

logger = structlog.get_logger()

RecordT = TypeVar("RecordT")


# =============================================================================
# RESULT CONTAINER
# =============================================================================

@dataclass
class MappingResult(Generic[RecordT]):
    """Records mapped from a raw collection, plus what was dropped."""
    records: list[RecordT] = field(default_factory=list)
    skipped: int = 0
    errors: list[RecordMappingError] = field(default_factory=list)


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key holding something non-empty."""
    for key in keys:
        value = raw.get(key)
        if not is_empty(value):
            return value
    return None


def _nested(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else {}


def _require_mapping(raw: Any, record_type: str, record_id: Optional[str]) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise RecordMappingError(
            f"Expected a mapping for {record_type}, got {type(raw).__name__}",
            record_type=record_type,
            record_id=record_id,
        )
    return raw


def _record_id(raw: Mapping[str, Any], record_id: Optional[str]) -> Optional[str]:
    if record_id:
        return record_id
    value = raw.get("id")
    return str(value) if not is_empty(value) else None


def _contact(raw: Mapping[str, Any]) -> Optional[ContactOverride]:
    extras = _nested(raw, "extras")
    if is_empty(extras.get("nome")) and is_empty(extras.get("telefone")):
        return None
    return ContactOverride(name=extras.get("nome"), phone=extras.get("telefone"))


def _build(
    model_cls: Callable[..., RecordT],
    record_type: str,
    record_id: Optional[str],
    /,
    **values: Any,
) -> RecordT:
    try:
        return model_cls(**values)
    except ValidationError as exc:
        raise RecordMappingError(
            f"Invalid {record_type} document",
            record_type=record_type,
            record_id=record_id,
            details={"errors": exc.errors(include_url=False)},
        ) from exc


# =============================================================================
# SINGLE RECORDS
# =============================================================================

def map_sale(raw: Any, record_id: Optional[str] = None) -> SaleRecord:
    """Map a sale document (``storehistoryc`` collection) to a SaleRecord."""
    raw = _require_mapping(raw, "sale", record_id)
    rid = _record_id(raw, record_id)
    return _build(
        SaleRecord,
        "sale",
        rid,
        id=rid,
        sale_date=_pick(raw, "dataVenda", "data", "dataRegistro"),
        amount=raw.get("valorVenda"),
        seller=_pick(raw, "vendedorResponsavel", "vendedor"),
        buyer_name=_pick(raw, "clienteNome"),
        buyer_tax_id=_pick(raw, "clienteCPF", "cpf"),
        buyer_phone=_pick(raw, "clienteTelefone", "telefone"),
        buyer_address=_pick(raw, "clienteEndereco", "endereco"),
        buyer_district=_pick(raw, "clienteBairro", "bairro"),
        buyer_city=_pick(raw, "clienteCidade", "cidade"),
        buyer_state=_pick(raw, "clienteEstado", "estado"),
        vehicle_brand=_pick(raw, "motoMarca", "marca"),
        vehicle_model=_pick(raw, "motoModelo", "modelo"),
        vehicle_year=_pick(raw, "motoAno", "ano"),
        vehicle_chassis=_pick(raw, "motoChassi", "chassi"),
        vehicle_plate=_pick(raw, "motoPlaca", "placa"),
        vehicle_color=_pick(raw, "motoCor", "cor"),
        vehicle_renavam=_pick(raw, "motoRenavam", "renavam"),
        payment_method=_pick(raw, "formaPagamento"),
        down_payment=_pick(raw, "entrada"),
        payment_details=_pick(raw, "detalhesPagamento"),
        notes=_pick(raw, "observacao"),
    )


def map_expense(raw: Any, record_id: Optional[str] = None) -> ExpenseRecord:
    """Map an expense document (``despesas`` collection) to an ExpenseRecord."""
    raw = _require_mapping(raw, "expense", record_id)
    rid = _record_id(raw, record_id)
    moto = _nested(raw, "moto")
    vehicle = None
    if moto:
        summary = VehicleSummary(
            model=moto.get("modelo"),
            plate=moto.get("placa"),
            chassis=moto.get("chassi"),
        )
        vehicle = None if summary.is_empty else summary
    return _build(
        ExpenseRecord,
        "expense",
        rid,
        id=rid,
        expense_date=_pick(raw, "dataDespesa", "data"),
        amount=raw.get("valor"),
        category=raw.get("categoria"),
        kind=raw.get("tipo"),
        description=_pick(raw, "descricao"),
        vehicle_id=raw.get("motoId"),
        vehicle=vehicle,
    )


def map_customer(raw: Any, record_id: Optional[str] = None) -> CustomerProfile:
    """Map a customer registration (``clientes`` collection)."""
    raw = _require_mapping(raw, "customer", record_id)
    return _build(
        CustomerProfile,
        "customer",
        _record_id(raw, record_id),
        name=raw.get("nome"),
        tax_id=raw.get("cpf"),
        phone=raw.get("telefone"),
        email=raw.get("email"),
        address=raw.get("endereco"),
        district=raw.get("bairro"),
        city=raw.get("cidade"),
        state=raw.get("estado"),
        preferred_contact=_contact(raw),
    )


def map_contract(raw: Any, record_id: Optional[str] = None) -> LegacyContractProfile:
    """Map a legacy contract (``contracts`` collection) to its buyer data."""
    raw = _require_mapping(raw, "contract", record_id)
    return _build(
        LegacyContractProfile,
        "contract",
        _record_id(raw, record_id),
        name=raw.get("clienteNome"),
        tax_id=raw.get("cpf"),
        phone=raw.get("telefone"),
        address=raw.get("endereco"),
        district=raw.get("bairro"),
        city=raw.get("cidade"),
        state=raw.get("estado"),
        preferred_contact=_contact(raw),
    )


def map_vehicle(raw: Any, record_id: Optional[str] = None) -> VehicleProfile:
    """Map an inventory document (``motos`` collection).

    Newer documents keep the vehicle data under ``adicionais``; older ones
    have it at the top level with a few capitalized keys.
    """
    raw = _require_mapping(raw, "vehicle", record_id)
    rid = _record_id(raw, record_id)
    extra = _nested(raw, "adicionais")

    def pick(*keys: str) -> Any:
        return first_non_empty(_pick(extra, *keys), _pick(raw, *keys))

    photos = raw.get("fotos")
    first_photo = photos[0] if isinstance(photos, list) and photos else None

    return _build(
        VehicleProfile,
        "vehicle",
        rid,
        id=rid,
        brand=pick("marca"),
        model=pick("modelo"),
        year=pick("ano", "Ano"),
        chassis=pick("chassi", "Chassi"),
        plate=pick("placa", "placaFinal"),
        color=pick("cor"),
        renavam=pick("renavam"),
        odometer=pick("km"),
        photo_url=pick("foto", "imageUrl", "fotoPrincipal") or first_photo,
        list_price=pick("valorVenda", "precoVenda", "valor"),
        supplier_cost=pick("custoFornecedor"),
        registered_by=pick("cadastradoPor", "CadastradoPor"),
    )


# =============================================================================
# COLLECTIONS
# =============================================================================

def _map_many(
    raws: Iterable[Any],
    mapper: Callable[[Any], RecordT],
    record_type: str,
) -> MappingResult[RecordT]:
    result: MappingResult[RecordT] = MappingResult()
    for position, raw in enumerate(raws):
        try:
            result.records.append(mapper(raw))
        except RecordMappingError as exc:
            result.skipped += 1
            result.errors.append(exc)
            logger.warning(
                "record_skipped",
                record_type=record_type,
                position=position,
                reason=exc.message,
                **{k: v for k, v in exc.details.items() if k != "record_type"},
            )
    return result


def map_sales(raws: Iterable[Any]) -> MappingResult[SaleRecord]:
    """Map a collection of sale documents, skipping unreadable ones."""
    return _map_many(raws, map_sale, "sale")


def map_expenses(raws: Iterable[Any]) -> MappingResult[ExpenseRecord]:
    """Map a collection of expense documents, skipping unreadable ones."""
    return _map_many(raws, map_expense, "expense")


def map_customers(raws: Iterable[Any]) -> MappingResult[CustomerProfile]:
    return _map_many(raws, map_customer, "customer")


def map_contracts(raws: Iterable[Any]) -> MappingResult[LegacyContractProfile]:
    return _map_many(raws, map_contract, "contract")


def map_vehicles(raws: Iterable[Any]) -> MappingResult[VehicleProfile]:
    return _map_many(raws, map_vehicle, "vehicle")


__all__ = [
    "MappingResult",
    "map_sale",
    "map_expense",
    "map_customer",
    "map_contract",
    "map_vehicle",
    "map_sales",
    "map_expenses",
    "map_customers",
    "map_contracts",
    "map_vehicles",
]
