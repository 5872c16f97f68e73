"""ChirpStack v3 HTTP integration envelopes.

The network server posts ``UplinkEvent`` / ``ErrorEvent`` messages either as
protobuf or in the protobuf JSON mapping. Only the fields the connector
reads are declared; everything else is skipped as unknown. Field numbers and
JSON names match ``as/integration/integration.proto``.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import DecodeError as ProtobufDecodeError, Message

from .errors import EnvelopeError
from .schemas import ErrorEnvelope, UplinkEnvelope
from .utils import EUI_LENGTH

_F = descriptor_pb2.FieldDescriptorProto

ERROR_TYPES = (
    "UNKNOWN",
    "UPLINK_CODEC",
    "DOWNLINK_CODEC",
    "OTAA",
    "UPLINK_FCNT",
    "UPLINK_MIC",
    "UPLINK_FCNT_RETRANSMISSION",
    "DOWNLINK_GATEWAY",
)

# (name, number, type, json_name)
UPLINK_FIELDS = (
    ("application_id", 1, _F.TYPE_UINT64, "applicationID"),
    ("application_name", 2, _F.TYPE_STRING, None),
    ("device_name", 3, _F.TYPE_STRING, None),
    ("dev_eui", 4, _F.TYPE_BYTES, "devEUI"),
    ("adr", 7, _F.TYPE_BOOL, None),
    ("dr", 8, _F.TYPE_UINT32, None),
    ("f_cnt", 9, _F.TYPE_UINT32, None),
    ("f_port", 10, _F.TYPE_UINT32, None),
    ("data", 11, _F.TYPE_BYTES, None),
    ("object_json", 12, _F.TYPE_STRING, "objectJSON"),
    ("confirmed_uplink", 14, _F.TYPE_BOOL, None),
    ("dev_addr", 15, _F.TYPE_BYTES, None),
)

ERROR_FIELDS = (
    ("application_id", 1, _F.TYPE_UINT64, "applicationID"),
    ("application_name", 2, _F.TYPE_STRING, None),
    ("device_name", 3, _F.TYPE_STRING, None),
    ("dev_eui", 4, _F.TYPE_BYTES, "devEUI"),
    ("type", 5, _F.TYPE_ENUM, None),
    ("error", 6, _F.TYPE_STRING, None),
    ("f_cnt", 7, _F.TYPE_UINT32, None),
)


def _add_message(file_proto: descriptor_pb2.FileDescriptorProto, name: str, fields) -> None:
    message = file_proto.message_type.add(name=name)
    for field_name, number, field_type, json_name in fields:
        field = message.field.add(name=field_name, number=number, type=field_type, label=_F.LABEL_OPTIONAL)
        if json_name:
            field.json_name = json_name
        if field_type == _F.TYPE_ENUM:
            field.type_name = ".integration.ErrorType"


def _build_pool() -> descriptor_pool.DescriptorPool:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="lora_connector/integration.proto",
        package="integration",
        syntax="proto3",
    )
    error_type = file_proto.enum_type.add(name="ErrorType")
    for number, name in enumerate(ERROR_TYPES):
        error_type.value.add(name=name, number=number)
    _add_message(file_proto, "UplinkEvent", UPLINK_FIELDS)
    _add_message(file_proto, "ErrorEvent", ERROR_FIELDS)

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return pool


_POOL = _build_pool()
UplinkEvent = message_factory.GetMessageClass(_POOL.FindMessageTypeByName("integration.UplinkEvent"))
ErrorEvent = message_factory.GetMessageClass(_POOL.FindMessageTypeByName("integration.ErrorEvent"))


def _error_type_name(number: int) -> str:
    if 0 <= number < len(ERROR_TYPES):
        return ERROR_TYPES[number]
    return f"UNKNOWN({number})"


class EnvelopeCodec:
    """Parses callback bodies in the statically configured wire encoding."""

    def __init__(self, use_json: bool = True):
        self.use_json = use_json

    def _unmarshal(self, body: bytes, message: Message) -> Message:
        try:
            if self.use_json:
                json_format.Parse(body, message, ignore_unknown_fields=True)
            else:
                message.ParseFromString(body)
        except (json_format.ParseError, ProtobufDecodeError, ValueError) as exc:
            raise EnvelopeError(f"unparseable payload: {exc}") from exc
        return message

    def _marshal(self, message: Message) -> bytes:
        if self.use_json:
            return json_format.MessageToJson(message).encode()
        return message.SerializeToString()

    def parse_uplink(self, body: bytes) -> UplinkEnvelope:
        up = self._unmarshal(body, UplinkEvent())
        if len(up.dev_eui) != EUI_LENGTH:
            raise EnvelopeError(f"devEUI must be {EUI_LENGTH} bytes, got {len(up.dev_eui)}")
        return UplinkEnvelope(
            application_id=up.application_id,
            application_name=up.application_name,
            device_name=up.device_name,
            dev_eui=up.dev_eui,
            f_cnt=up.f_cnt,
            f_port=up.f_port,
            data=up.data,
        )

    def parse_error(self, body: bytes) -> ErrorEnvelope:
        event = self._unmarshal(body, ErrorEvent())
        return ErrorEnvelope(
            application_id=event.application_id,
            application_name=event.application_name,
            device_name=event.device_name,
            dev_eui=event.dev_eui,
            type=_error_type_name(event.type),
            error=event.error,
            f_cnt=event.f_cnt,
        )

    def encode_uplink(self, envelope: UplinkEnvelope) -> bytes:
        message = UplinkEvent(
            application_id=envelope.application_id,
            application_name=envelope.application_name,
            device_name=envelope.device_name,
            dev_eui=envelope.dev_eui,
            f_cnt=envelope.f_cnt,
            f_port=envelope.f_port,
            data=envelope.data,
        )
        return self._marshal(message)

    def encode_error(self, envelope: ErrorEnvelope) -> bytes:
        message = ErrorEvent(
            application_id=envelope.application_id,
            application_name=envelope.application_name,
            device_name=envelope.device_name,
            dev_eui=envelope.dev_eui,
            type=ERROR_TYPES.index(envelope.type) if envelope.type in ERROR_TYPES else 0,
            error=envelope.error,
            f_cnt=envelope.f_cnt,
        )
        return self._marshal(message)
