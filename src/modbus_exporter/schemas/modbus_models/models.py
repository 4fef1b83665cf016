"""Modbus module and metric definition models."""

import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel, Field, field_validator, model_validator


METRIC_NAME_PATTERN = r"^[a-zA-Z_:][a-zA-Z0-9_:]*$"
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class Protocol(str, Enum):
    """Transport used to reach a module's targets."""
    TCP = "tcp"
    SERIAL = "serial"


class RegisterClass(str, Enum):
    """Modbus data table; selects the wire read function."""
    COIL = "coil"
    DISCRETE_INPUT = "discrete_input"
    INPUT_REGISTER = "input_register"
    HOLDING_REGISTER = "holding_register"


class DataType(str, Enum):
    """Value interpretation of a register window."""
    BOOL = "bool"
    INT16 = "int16"
    UINT16 = "uint16"
    FLOAT16 = "float16"
    INT32 = "int32"
    UINT32 = "uint32"
    FLOAT32 = "float32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT64 = "float64"


class Endianness(str, Enum):
    """Byte order of a value window (ABCD = big-endian)."""
    BIG = "big"        # ABCD
    LITTLE = "little"  # DCBA
    MIXED = "mixed"    # CDAB
    YOLO = "yolo"      # BADC


class MetricType(str, Enum):
    """Prometheus metric type."""
    COUNTER = "counter"
    GAUGE = "gauge"


BIT_REGISTER_CLASSES = (RegisterClass.COIL, RegisterClass.DISCRETE_INPUT)


def exposed_names(name: str, metric_type: MetricType) -> Set[str]:
    """
    Sample and family names a collector claims in a registry.
    
    Counters drop a trailing `_total` from the family name and expose
    `<family>_total` and `<family>_created` samples.
    """
    if metric_type == MetricType.COUNTER:
        family = name[:-len("_total")] if name.endswith("_total") else name
        return {family, f"{family}_total", f"{family}_created"}
    return {name}


class MetricDef(BaseModel):
    """
    Schema for a single metric read from a Modbus device.
    
    The address is the 1-based register number as written in device manuals.
    """
    name: str = Field(..., pattern=METRIC_NAME_PATTERN, description="Prometheus metric name")
    help: str = Field(default="", description="Metric help text")
    labels: Dict[str, str] = Field(default_factory=dict, description="Constant labels of the series")
    register_class: RegisterClass = Field(..., description="Modbus data table to read from")
    address: int = Field(..., ge=1, le=65536, description="1-based register number")
    data_type: DataType = Field(..., description="Data type interpretation")
    endianness: Endianness = Field(default=Endianness.BIG, description="Byte order of the value")
    bit_offset: Optional[int] = Field(None, ge=0, le=15, description="Bit of the low byte, bool only")
    factor: Optional[float] = Field(None, description="Multiplier applied to the decoded value")
    metric_type: MetricType = Field(..., description="counter or gauge")

    model_config = {"frozen": True}

    @field_validator("labels", mode="before")
    @classmethod
    def coerce_label_values(cls, v: Any) -> Any:
        """YAML scalars such as `phase: 1` or `enabled: true` become label strings."""
        if not isinstance(v, dict):
            return v
        coerced = {}
        for key, value in v.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, (int, float)):
                value = str(value)
            coerced[key] = value
        return coerced

    @field_validator("labels")
    @classmethod
    def validate_label_names(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Reject label names Prometheus would refuse."""
        for key in v:
            if not LABEL_NAME_RE.match(key) or key.startswith("__"):
                raise ValueError(f"invalid label name '{key}'")
        return v

    @model_validator(mode="after")
    def validate_bool_fields(self) -> "MetricDef":
        """bit_offset only applies to bool, factor never does."""
        if self.bit_offset is not None and self.data_type != DataType.BOOL:
            raise ValueError(
                f"metric '{self.name}': bit_offset is only valid for data_type 'bool', "
                f"got '{self.data_type.value}'"
            )
        if self.factor is not None and self.data_type == DataType.BOOL:
            raise ValueError(f"metric '{self.name}': factor cannot be used with data_type 'bool'")
        if self.bit_offset and self.register_class in BIT_REGISTER_CLASSES:
            raise ValueError(
                f"metric '{self.name}': {self.register_class.value} values are single bits, "
                f"bit_offset must be 0, got {self.bit_offset}"
            )
        return self


class WorkaroundConfig(BaseModel):
    """Device quirks."""
    sleep_after_connect: int = Field(
        default=0, ge=0, description="Milliseconds to wait after connecting before the first read"
    )


class ModuleConfig(BaseModel):
    """A named set of metric definitions plus the transport settings used to read them."""
    name: str = Field(..., min_length=1, description="Module name, referenced by the 'module' query parameter")
    protocol: Protocol = Field(..., description="tcp or serial")
    timeout: int = Field(default=1000, gt=0, description="Request timeout in milliseconds")
    
    # Serial line settings, ignored for tcp
    baudrate: int = Field(default=19200, gt=0)
    databits: int = Field(default=8, ge=5, le=8)
    stopbits: int = Field(default=1, ge=1, le=2)
    parity: Literal["N", "E", "O"] = Field(default="N")
    
    workarounds: WorkaroundConfig = Field(default_factory=WorkaroundConfig)
    metrics: List[MetricDef] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_metric_families(self) -> "ModuleConfig":
        """Definitions sharing a name must agree on label keys, type and help; distinct names must not collide."""
        seen: Dict[str, MetricDef] = {}
        for definition in self.metrics:
            first = seen.setdefault(definition.name, definition)
            if first is definition:
                claimed_by = next(
                    (
                        other.name for other in seen.values()
                        if other is not definition
                        and exposed_names(other.name, other.metric_type)
                        & exposed_names(definition.name, definition.metric_type)
                    ),
                    None,
                )
                if claimed_by is not None:
                    raise ValueError(
                        f"module '{self.name}': metric '{definition.name}' "
                        f"({definition.metric_type.value}) collides with metric '{claimed_by}' in the exposition"
                    )
                continue
            if set(first.labels) != set(definition.labels):
                raise ValueError(
                    f"module '{self.name}': metric '{definition.name}' declared with label keys "
                    f"{sorted(first.labels)} and {sorted(definition.labels)}"
                )
            if first.metric_type != definition.metric_type:
                raise ValueError(
                    f"module '{self.name}': metric '{definition.name}' declared as both "
                    f"{first.metric_type.value} and {definition.metric_type.value}"
                )
            if first.help != definition.help:
                raise ValueError(
                    f"module '{self.name}': metric '{definition.name}' declared with different help texts"
                )
        return self

    def get_metrics_by_register_class(self, register_class: RegisterClass) -> List[MetricDef]:
        """Filter metric definitions by register class, keeping declaration order."""
        return [m for m in self.metrics if m.register_class == register_class]


class ExporterConfig(BaseModel):
    """Container for all configured modules."""
    modules: List[ModuleConfig] = Field(default_factory=list)

    @field_validator("modules")
    @classmethod
    def validate_unique_names(cls, v: List[ModuleConfig]) -> List[ModuleConfig]:
        """Module names must be unique."""
        names = set()
        for module in v:
            if module.name in names:
                raise ValueError(f"duplicate module name '{module.name}'")
            names.add(module.name)
        return v

    def get_module(self, name: str) -> Optional[ModuleConfig]:
        """Get a module by its name."""
        for module in self.modules:
            if module.name == name:
                return module
        return None


class DecodedMetric(BaseModel):
    """One decoded value ready to be exposed as a series."""
    name: str
    help: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)
    value: float
    metric_type: MetricType

    model_config = {"frozen": True}
