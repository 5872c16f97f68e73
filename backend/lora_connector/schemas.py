from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field, AliasChoices, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- connctd thing model ----

class ValueType(str, Enum):
    NUMBER = "NUMBER"
    STRING = "STRING"
    BOOLEAN = "BOOLEAN"


class ThingAttribute(_CamelModel):
    name: str
    value: str


class ActionParameter(_CamelModel):
    name: str
    type: ValueType


class Action(_CamelModel):
    id: str
    name: str
    parameters: list[ActionParameter] = Field(default_factory=list)


class Property(_CamelModel):
    id: str
    name: str
    value: str = ""
    unit: str = ""
    type: Optional[ValueType] = None
    property_type: str = ""


class Component(_CamelModel):
    id: str
    name: str
    component_type: str
    capabilities: list[str] = Field(default_factory=list)
    properties: list[Property] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)


class Thing(_CamelModel):
    id: Optional[str] = None
    name: str
    manufacturer: str
    display_type: str
    main_component_id: str
    status: str = "AVAILABLE"
    attributes: list[ThingAttribute] = Field(default_factory=list)
    components: list[Component] = Field(default_factory=list)


# ---- connector protocol ----

class InstallationRequest(BaseModel):
    id: str = Field(min_length=1)
    token: str = Field(min_length=1)
    state: Optional[int] = None
    configuration: list[dict[str, Any]] = Field(default_factory=list)


class InstantiationRequest(BaseModel):
    id: str = Field(min_length=1)
    installation_id: str = Field(min_length=1, validation_alias=AliasChoices("installation_id", "installationId"))
    token: str = Field(min_length=1)
    state: Optional[int] = None
    configuration: list[dict[str, Any]] = Field(default_factory=list)


class ActionRequestStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ActionRequest(_CamelModel):
    id: str
    thing_id: str
    component_id: str = ""
    action_id: str
    status: Optional[ActionRequestStatus] = None
    parameters: dict[str, str] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    id: str = ""
    status: ActionRequestStatus
    error: str = ""


# ---- network server envelopes ----

class UplinkEnvelope(BaseModel):
    application_id: int
    application_name: str = ""
    device_name: str = ""
    dev_eui: bytes
    f_cnt: int = 0
    f_port: int = 0
    data: bytes = b""


class ErrorEnvelope(BaseModel):
    application_id: int
    application_name: str = ""
    device_name: str = ""
    dev_eui: bytes = b""
    type: str = "UNKNOWN"
    error: str = ""
    f_cnt: int = 0
