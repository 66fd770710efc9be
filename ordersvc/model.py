"""Order domain model: JSON mapping and field validation."""

from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator, Mapping

ZERO_UUID = uuid.UUID(int=0)
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_NUMERIC = re.compile(r"^[-+]?[0-9]+(?:\.[0-9]+)?$")
_ALPHA = re.compile(r"^[a-zA-Z]+$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s.]+(?:\.[^@\s.]+)+$")
_UUID4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")
_BCP47 = re.compile(r"^(?:[A-Za-z]{2,8}|[xX])(?:[-_][A-Za-z0-9]{1,8})*$")
_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)
_CURRENCIES = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND BOB BOV
    BRL BSD BTN BWP BYN BZD CAD CDF CHE CHF CHW CLF CLP CNY COP COU CRC CUC CUP CVE
    CZK DJF DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP GMD GNF GTQ GYD HKD
    HNL HTG HUF IDR ILS INR IQD IRR ISK JMD JOD JPY KES KGS KHR KMF KPW KRW KWD KYD
    KZT LAK LBP LKR LRD LSL LYD MAD MDL MGA MKD MMK MNT MOP MRU MUR MVR MWK MXN MXV
    MYR MZN NAD NGN NIO NOK NPR NZD OMR PAB PEN PGK PHP PKR PLN PYG QAR RON RSD RUB
    RWF SAR SBD SCR SDG SEK SGD SHP SLE SLL SOS SRD SSP STN SVC SYP SZL THB TJS TMT
    TND TOP TRY TTD TWD TZS UAH UGX USD USN UYI UYU UYW UZS VED VES VND VUV WST XAF
    XAG XAU XBA XBB XBC XBD XCD XDR XOF XPD XPF XPT XSU XTS XUA XXX YER ZAR ZMW ZWL
    """.split()
)
_NOT_IN_JSON = {"json": False}


class ValidationError(ValueError):
    """Raised when an order breaks one or more field rules."""

    def __init__(self, fields: Iterable[str]) -> None:
        self.fields = list(fields)
        super().__init__("validation failed: " + ", ".join(self.fields))


def _required(value: Any) -> bool:
    if isinstance(value, uuid.UUID):
        return value != ZERO_UUID
    if isinstance(value, datetime):
        return value != ZERO_TIME
    return bool(value)


def _matches(pattern: re.Pattern[str]) -> Callable[[Any], bool]:
    return lambda value: bool(pattern.match(str(value)))


def _at_least(bound: int) -> Callable[[int], bool]:
    return lambda value: value >= bound


_numeric = _matches(_NUMERIC)


def _failures(prefix: str, rules: Iterable[tuple[str, Any, tuple[Callable[[Any], bool], ...]]]) -> Iterator[str]:
    for name, value, checks in rules:
        if not all(check(value) for check in checks):
            yield prefix + name


def _decode_value(key: str, value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(default, uuid.UUID):
        if isinstance(value, str):
            try:
                return uuid.UUID(value)
            except ValueError as exc:
                raise ValueError(f"{key}: invalid UUID {value!r}") from exc
    elif isinstance(default, str):
        if isinstance(value, str):
            return value
    elif isinstance(value, int) and not isinstance(value, bool):
        return value
    raise ValueError(f"{key}: unexpected value {value!r}")


def _scalars(cls: type, data: Any, what: str) -> dict[str, Any]:
    """Decode the plain (string, integer, UUID) JSON fields of a dataclass."""
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected an object, got {data!r}")
    return {
        f.name: _decode_value(f.name, data.get(f.name), f.default)
        for f in fields(cls)
        if f.metadata.get("json", True) and isinstance(f.default, (str, int, uuid.UUID))
    }


def _encode(obj: Any) -> dict[str, Any]:
    result = {}
    for f in fields(obj):
        if f.metadata.get("json", True):
            value = getattr(obj, f.name)
            result[f.name] = str(value) if isinstance(value, uuid.UUID) else value
    return result


def _parse_time(text: str) -> datetime:
    match = _TIMESTAMP.match(text)
    if not match:
        raise ValueError(f"invalid timestamp {text!r}")
    day, clock, fraction, zone = match.groups()
    fraction = (fraction or "")[:6].ljust(6, "0")
    zone = "+00:00" if zone in ("Z", "z") else zone
    return datetime.fromisoformat(f"{day}T{clock}.{fraction}{zone}")


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.replace(microsecond=0, tzinfo=None).isoformat()
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    return text + ("Z" if not moment.utcoffset() else moment.isoformat()[-6:])


@dataclass
class Delivery:
    name: str = ""
    phone: str = ""
    zip: str = ""
    city: str = ""
    address: str = ""
    region: str = ""
    email: str = ""

    def _problems(self) -> Iterator[str]:
        return _failures("delivery.", [
            ("name", self.name, (_required,)),
            ("phone", self.phone, (_required,)),
            ("zip", self.zip, (_required, _numeric)),
            ("city", self.city, (_required,)),
            ("address", self.address, (_required,)),
            ("region", self.region, (_required, _matches(_ALPHA))),
            ("email", self.email, (_required, _matches(_EMAIL))),
        ])


@dataclass
class Item:
    chrt_id: int = 0
    track_number: str = ""
    price: int = 0
    rid: str = ""
    name: str = ""
    sale: int = 0
    size: str = ""
    total_price: int = 0
    nm_id: int = 0
    brand: str = ""
    status: int = 0
    id: uuid.UUID = field(default=ZERO_UUID, metadata=_NOT_IN_JSON)
    order_uid: uuid.UUID = field(default=ZERO_UUID, metadata=_NOT_IN_JSON)


@dataclass
class Payment:
    transaction: uuid.UUID = ZERO_UUID
    request_id: str = ""
    currency: str = ""
    provider: str = ""
    amount: int = 0
    payment_dt: int = 0
    bank: str = ""
    delivery_cost: int = 0
    goods_total: int = 0
    custom_fee: int = 0

    def _problems(self) -> Iterator[str]:
        return _failures("payment.", [
            ("transaction", self.transaction, (_required, _matches(_UUID4))),
            ("currency", self.currency, (_required, _CURRENCIES.__contains__)),
            ("provider", self.provider, (_required,)),
            ("amount", self.amount, (_at_least(1),)),
            ("payment_dt", self.payment_dt, (_required,)),
            ("bank", self.bank, (_required,)),
            ("delivery_cost", self.delivery_cost, (_at_least(0),)),
            ("goods_total", self.goods_total, (_at_least(1),)),
            ("custom_fee", self.custom_fee, (_at_least(0),)),
        ])


@dataclass
class Order:
    order_uid: uuid.UUID = ZERO_UUID
    track_number: str = ""
    entry: str = ""
    delivery: Delivery = field(default_factory=Delivery)
    payment: Payment = field(default_factory=Payment)
    items: list[Item] | None = None
    locale: str = ""
    internal_signature: str = ""
    customer_id: str = ""
    delivery_service: str = ""
    shardkey: str = ""
    sm_id: int = 0
    date_created: datetime = ZERO_TIME
    oof_shard: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Order:
        """Build an order from decoded JSON; absent fields keep their zero values."""
        if data is None:
            return cls()
        values = _scalars(cls, data, "order")
        raw_items = data.get("items")
        if raw_items is not None and not isinstance(raw_items, list):
            raise ValueError(f"items: expected an array, got {raw_items!r}")
        created = data.get("date_created")
        if created is not None and not isinstance(created, str):
            raise ValueError(f"date_created: expected a timestamp string, got {created!r}")
        return cls(
            **values,
            delivery=Delivery(**_scalars(Delivery, data.get("delivery"), "delivery")),
            payment=Payment(**_scalars(Payment, data.get("payment"), "payment")),
            items=None if raw_items is None else [Item(**_scalars(Item, raw, "items")) for raw in raw_items],
            date_created=ZERO_TIME if created is None else _parse_time(created),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the order as a JSON-ready dictionary."""
        result = _encode(self)
        result.update(
            delivery=_encode(self.delivery),
            payment=_encode(self.payment),
            items=None if self.items is None else [_encode(item) for item in self.items],
            date_created=_format_time(self.date_created),
        )
        return result

    @classmethod
    def from_json(cls, text: str | bytes) -> Order:
        """Decode an order from JSON text."""
        return cls.from_dict(json.loads(text))

    def to_json(self) -> str:
        """Encode the order as compact JSON."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    def validate(self) -> None:
        """Raise ValidationError naming every field that breaks its rule."""
        problems = list(_failures("", [
            ("order_uid", self.order_uid, (_required, _matches(_UUID4))),
            ("track_number", self.track_number, (_required,)),
            ("entry", self.entry, (_required,)),
        ]))
        problems.extend(self.delivery._problems())
        problems.extend(self.payment._problems())
        problems.extend(_failures("", [
            ("items", self.items, (lambda value: value is not None,)),
            ("locale", self.locale, (_required, _matches(_BCP47))),
            ("customer_id", self.customer_id, (_required,)),
            ("delivery_service", self.delivery_service, (_required,)),
            ("shardkey", self.shardkey, (_required, _numeric)),
            ("sm_id", self.sm_id, (_required,)),
            ("date_created", self.date_created, (_required,)),
            ("oof_shard", self.oof_shard, (_required, _numeric)),
        ]))
        if problems:
            raise ValidationError(problems)


def new_blank_order() -> Order:
    """Return an otherwise empty order carrying a fresh random UID."""
    return Order(order_uid=uuid.uuid4())