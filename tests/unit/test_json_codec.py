"""Unit tests for JsonCodec encode/decode under different policies."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Union
from uuid import UUID

import pytest
from pydantic import BaseModel, ConfigDict, Field

from restbind.codec.json_codec import JsonCodec
from restbind.codec.naming import NamingConvention
from restbind.codec.policy import SerializationPolicy
from restbind.errors import ConfigurationError, DecodeError, EncodeError
from restbind.schemas.descriptors import ListOf, TypeRef


# ── Models ────────────────────────────────────────────────────────────────────


class Status(str, Enum):
    ACTIVE = "ACTIVE"
    RETIRED = "RETIRED"


class Shipment(BaseModel):
    shipment_id: int
    ship_date: date
    tags: list[str] = []
    notes: Optional[str] = None


class Customer(BaseModel):
    first_name: str
    date_of_birth: Optional[date] = None


class OrderLine(BaseModel):
    sku_code: str
    unit_count: int


class Order(BaseModel):
    order_id: int
    customer: Customer
    order_lines: list[OrderLine]
    status: Status = Status.ACTIVE
    metadata: dict[str, str] = {}


class Widget(BaseModel):
    id: int = Field(alias="widget_id")
    name: str


class OpenRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    record_id: int


@dataclass
class Reading:
    meter_no: str
    read_on: date
    value: float


class Item(BaseModel):
    id: int


class Parcel(BaseModel):
    contents: Union[Customer, OrderLine]


@dataclass
class Document:
    title: str
    slug: str = field(init=False)

    def __post_init__(self):
        self.slug = self.title.lower().replace(" ", "-")


def _wire(codec: JsonCodec, body) -> dict:
    return json.loads(codec.encode(body))


# ── Construction ──────────────────────────────────────────────────────────────


class TestConstruction:
    def test_default_policy(self):
        assert JsonCodec().policy == SerializationPolicy()

    def test_from_options(self):
        codec = JsonCodec.from_options(naming="camelCase", fail_on_unknown_fields=True)
        assert codec.policy.naming is NamingConvention.LOWER_CAMEL_CASE
        assert codec.policy.fail_on_unknown_fields is True

    def test_from_options_rejects_unknown_naming(self):
        with pytest.raises(ConfigurationError):
            JsonCodec.from_options(naming="hungarian")


# ── Round trip ────────────────────────────────────────────────────────────────


class TestRoundTrip:
    @pytest.mark.parametrize("naming", list(NamingConvention))
    @pytest.mark.parametrize("strict", [False, True])
    @pytest.mark.parametrize("date_format", ["%Y-%m-%d", "%d/%m/%Y", "%Y%m%d"])
    def test_model_with_date_round_trips(self, naming, strict, date_format):
        codec = JsonCodec.from_options(
            naming=naming, fail_on_unknown_fields=strict, date_format=date_format
        )
        original = Shipment(shipment_id=3, ship_date=date(2024, 2, 29), tags=["fragile"])
        assert codec.decode(codec.encode(original), Shipment) == original

    def test_nested_models_round_trip_in_camel_case(self):
        codec = JsonCodec.from_options(naming="camelCase")
        order = Order(
            order_id=10,
            customer=Customer(first_name="Ada", date_of_birth=date(1990, 12, 10)),
            order_lines=[OrderLine(sku_code="A-1", unit_count=2)],
            status=Status.RETIRED,
        )
        assert codec.decode(codec.encode(order), Order) == order

    def test_dataclass_round_trips(self):
        codec = JsonCodec.from_options(naming="PascalCase", date_format="%d/%m/%Y")
        reading = Reading(meter_no="M-7", read_on=date(2023, 1, 31), value=12.5)
        assert _wire(codec, reading) == {"MeterNo": "M-7", "ReadOn": "31/01/2023", "Value": 12.5}
        assert codec.decode(codec.encode(reading), Reading) == reading


# ── Encoding ──────────────────────────────────────────────────────────────────


class TestEncode:
    def test_camel_case_keys(self):
        codec = JsonCodec.from_options(naming="camelCase")
        wire = _wire(codec, Shipment(shipment_id=1, ship_date=date(2024, 1, 5)))
        assert wire == {"shipmentId": 1, "shipDate": "2024-01-05", "tags": [], "notes": None}

    def test_nested_keys_and_enum(self):
        codec = JsonCodec.from_options(naming="kebab-case")
        wire = _wire(
            codec,
            Order(
                order_id=1,
                customer=Customer(first_name="Ada"),
                order_lines=[OrderLine(sku_code="X", unit_count=1)],
            ),
        )
        assert wire["order-id"] == 1
        assert wire["customer"] == {"first-name": "Ada", "date-of-birth": None}
        assert wire["order-lines"] == [{"sku-code": "X", "unit-count": 1}]
        assert wire["status"] == "ACTIVE"

    def test_explicit_alias_wins_over_naming(self):
        codec = JsonCodec.from_options(naming="camelCase")
        assert _wire(codec, Widget(widget_id=7, name="A")) == {"widget_id": 7, "name": "A"}

    def test_mapping_keys_not_renamed(self):
        codec = JsonCodec.from_options(naming="camelCase")
        assert _wire(codec, {"first_name": "A", "nested_map": {"inner_key": 1}}) == {
            "first_name": "A",
            "nested_map": {"inner_key": 1},
        }

    def test_model_dict_field_keys_not_renamed(self):
        codec = JsonCodec.from_options(naming="camelCase")
        order = Order(
            order_id=1,
            customer=Customer(first_name="A"),
            order_lines=[],
            metadata={"source_system": "erp"},
        )
        assert _wire(codec, order)["metadata"] == {"source_system": "erp"}

    def test_date_uses_policy_format_datetime_stays_iso(self):
        codec = JsonCodec.from_options(date_format="%d/%m/%Y")
        stamp = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)
        assert _wire(codec, {"day": date(2024, 3, 1), "at": stamp}) == {
            "day": "01/03/2024",
            "at": "2024-03-01T12:30:00+00:00",
        }

    def test_pydantic_known_scalars(self):
        uid = UUID("12345678-1234-5678-1234-567812345678")
        assert _wire(JsonCodec(), {"id": uid}) == {"id": str(uid)}

    def test_extra_fields_of_open_model_encoded(self):
        record = OpenRecord(record_id=1, origin_code="x")
        assert _wire(JsonCodec(), record) == {"record_id": 1, "origin_code": "x"}

    def test_compact_utf8_output(self):
        assert JsonCodec().encode({"name": "café"}) == '{"name":"café"}'.encode("utf-8")

    def test_unsupported_type_raises_encode_error(self):
        with pytest.raises(EncodeError):
            JsonCodec().encode({"handle": object()})

    def test_nan_raises_encode_error(self):
        with pytest.raises(EncodeError):
            JsonCodec().encode({"value": float("nan")})


# ── Decoding ──────────────────────────────────────────────────────────────────


class TestDecode:
    def test_extra_field_ignored_by_default(self):
        codec = JsonCodec()
        with_extra = b'{"widget_id": 7, "name": "A", "extra_field": true}'
        without_extra = b'{"widget_id": 7, "name": "A"}'
        assert codec.decode(with_extra, Widget) == codec.decode(without_extra, Widget)
        assert codec.decode(with_extra, Widget) == Widget(widget_id=7, name="A")

    def test_extra_field_rejected_when_strict(self):
        codec = JsonCodec.from_options(fail_on_unknown_fields=True)
        with pytest.raises(DecodeError) as info:
            codec.decode(b'{"widget_id": 7, "name": "A", "extra_field": true}', Widget)
        assert info.value.details == {"path": "$", "unknown_fields": ["extra_field"]}

    def test_nested_unknown_field_path_when_strict(self):
        codec = JsonCodec.from_options(naming="camelCase", fail_on_unknown_fields=True)
        payload = {
            "orderId": 1,
            "customer": {"firstName": "A", "loyaltyTier": "gold"},
            "orderLines": [],
        }
        with pytest.raises(DecodeError) as info:
            codec.decode(json.dumps(payload).encode(), Order)
        assert info.value.details["path"] == "$.customer"

    def test_open_model_keeps_unknown_fields(self):
        record = JsonCodec().decode(b'{"record_id": 1, "origin_code": "x"}', OpenRecord)
        assert record.model_extra == {"origin_code": "x"}

    def test_missing_required_field_raises(self):
        with pytest.raises(DecodeError) as info:
            JsonCodec().decode(b'{"name": "A"}', Widget)
        assert info.value.details[0]["type"] == "missing"

    def test_wrong_shape_raises(self):
        with pytest.raises(DecodeError):
            JsonCodec().decode(b"[1, 2]", Widget)

    def test_invalid_json_raises(self):
        with pytest.raises(DecodeError):
            JsonCodec().decode(b"{not json", Widget)

    def test_date_not_matching_format_raises(self):
        codec = JsonCodec.from_options(date_format="%d/%m/%Y")
        with pytest.raises(DecodeError) as info:
            codec.decode(b'{"shipment_id": 1, "ship_date": "2024-02-29"}', Shipment)
        assert info.value.details["path"] == "$.ship_date"

    @pytest.mark.parametrize("content", [b"", b"   ", b"\n"])
    def test_empty_body_decodes_to_none(self, content):
        assert JsonCodec().decode(content, Widget) is None

    def test_no_descriptor_returns_parsed_json(self):
        assert JsonCodec().decode(b'{"a": [1, 2]}') == {"a": [1, 2]}

    def test_type_ref_descriptor(self):
        widget = JsonCodec().decode(b'{"widget_id": 1, "name": "A"}', TypeRef(Widget))
        assert widget == Widget(widget_id=1, name="A")

    def test_list_of_preserves_order(self):
        class Item(BaseModel):
            id: int

        items = JsonCodec().decode(b'[{"id":1},{"id":2}]', ListOf(Item))
        assert [item.id for item in items] == [1, 2]
        assert isinstance(items, list)

    def test_list_of_tuple_container(self):
        codec = JsonCodec.from_options(naming="camelCase")
        lines = codec.decode(
            b'[{"skuCode": "A", "unitCount": 1}, {"skuCode": "B", "unitCount": 2}]',
            ListOf(OrderLine, container=tuple),
        )
        assert lines == (
            OrderLine(sku_code="A", unit_count=1),
            OrderLine(sku_code="B", unit_count=2),
        )

    def test_list_of_dates(self):
        codec = JsonCodec.from_options(date_format="%d/%m/%Y")
        assert codec.decode(b'["01/02/2024", "03/04/2024"]', ListOf(date)) == [
            date(2024, 2, 1),
            date(2024, 4, 3),
        ]

    def test_optional_date_null(self):
        customer = JsonCodec().decode(
            b'{"first_name": "A", "date_of_birth": null}', Customer
        )
        assert customer.date_of_birth is None

    def test_snake_case_payload_not_matched_under_camel_policy(self):
        codec = JsonCodec.from_options(naming="camelCase")
        with pytest.raises(DecodeError):
            codec.decode(b'{"shipment_id": 1, "ship_date": "2024-01-01"}', Shipment)


# ── Unions ────────────────────────────────────────────────────────────────────


class TestUnion:
    @pytest.mark.parametrize("strict", [False, True])
    def test_payload_matching_later_member(self, strict):
        codec = JsonCodec.from_options(fail_on_unknown_fields=strict)
        assert codec.decode(b'{"id": 1}', Union[Widget, Item]) == Item(id=1)

    def test_payload_matching_first_member(self):
        decoded = JsonCodec().decode(b'{"widget_id": 4, "name": "W"}', Union[Widget, Item])
        assert decoded == Widget(widget_id=4, name="W")

    def test_union_field_uses_member_wire_keys(self):
        codec = JsonCodec.from_options(naming="camelCase")
        parcel = codec.decode(b'{"contents": {"skuCode": "A", "unitCount": 1}}', Parcel)
        assert parcel.contents == OrderLine(sku_code="A", unit_count=1)

    def test_strict_rejects_when_no_member_accepts(self):
        codec = JsonCodec.from_options(fail_on_unknown_fields=True)
        with pytest.raises(DecodeError) as info:
            codec.decode(b'{"colour": "red"}', Union[Widget, Item])
        assert info.value.details["unknown_fields"] == ["colour"]

    def test_no_member_accepts_raises(self):
        with pytest.raises(DecodeError):
            JsonCodec().decode(b'{"colour": "red"}', Union[Widget, Item])


# ── Date-keyed mappings ───────────────────────────────────────────────────────


class TestDateKeys:
    def test_date_keys_round_trip_with_policy_format(self):
        codec = JsonCodec.from_options(date_format="%d/%m/%Y")
        daily = {date(2024, 1, 2): 5, date(2024, 1, 3): 7}
        assert _wire(codec, daily) == {"02/01/2024": 5, "03/01/2024": 7}
        assert codec.decode(codec.encode(daily), dict[date, int]) == daily

    def test_date_key_not_matching_format_raises(self):
        codec = JsonCodec.from_options(date_format="%d/%m/%Y")
        with pytest.raises(DecodeError) as info:
            codec.decode(b'{"2024-01-02": 5}', dict[date, int])
        assert info.value.details["value"] == "2024-01-02"

    def test_string_keys_untouched(self):
        codec = JsonCodec.from_options(date_format="%d/%m/%Y")
        assert codec.decode(b'{"2024-01-02": 5}', dict[str, int]) == {"2024-01-02": 5}


# ── Dataclasses with derived fields ───────────────────────────────────────────


class TestDerivedDataclassFields:
    def test_non_init_field_not_encoded(self):
        assert _wire(JsonCodec(), Document(title="Read Me")) == {"title": "Read Me"}

    @pytest.mark.parametrize("naming", ["snake_case", "camelCase", "kebab-case"])
    def test_strict_round_trip(self, naming):
        codec = JsonCodec.from_options(naming=naming, fail_on_unknown_fields=True)
        doc = Document(title="Read Me")
        decoded = codec.decode(codec.encode(doc), Document)
        assert decoded == doc
        assert decoded.slug == "read-me"
