"""Per-provider property schemas for diagram node types.

Each ``ResourceSchema`` compiles its field table into a JSON Schema and checks
node properties with ``Draft202012Validator``. CIDR blocks are checked through
the ``cidr`` format.
"""
from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jsonschema import Draft202012Validator, FormatChecker, ValidationError

FORMAT_CHECKER = FormatChecker()


@FORMAT_CHECKER.checks("cidr", raises=ValueError)
def _is_cidr(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    ipaddress.ip_network(value, strict=False)
    return True


class FieldType(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    CIDR = "cidr"
    ARRAY = "array"
    OBJECT = "object"


_JSON_TYPES = {
    FieldType.STRING: "string",
    FieldType.INT: "integer",
    FieldType.FLOAT: "number",
    FieldType.BOOL: "boolean",
    FieldType.CIDR: "string",
    FieldType.ARRAY: "array",
    FieldType.OBJECT: "object",
}

_TYPE_PHRASES = {
    "string": "a string",
    "integer": "an integer",
    "number": "a number",
    "boolean": "a boolean",
    "array": "an array",
    "object": "an object",
}


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: FieldType = FieldType.STRING
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    enum: Tuple[str, ...] = ()
    prefix: Optional[str] = None

    def json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": _JSON_TYPES[self.type]}
        if self.type == FieldType.CIDR:
            schema["format"] = "cidr"
        if self.min_length is not None:
            schema["minLength"] = self.min_length
        if self.max_length is not None:
            schema["maxLength"] = self.max_length
        if self.min_value is not None:
            schema["minimum"] = self.min_value
        if self.max_value is not None:
            schema["maximum"] = self.max_value
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.prefix:
            schema["pattern"] = "^" + re.escape(self.prefix)
        elif self.pattern:
            schema["pattern"] = rf"^(?:{self.pattern})\Z"
        return schema

    def coerce(self, value: Any) -> Any:
        # canvas forms often send numbers as strings
        if self.type not in (FieldType.INT, FieldType.FLOAT) or not isinstance(value, str):
            return value
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else number

    def describe(self, err: ValidationError) -> str:
        """Phrase a validation failure on this field."""
        if err.validator == "type":
            return f"must be {_TYPE_PHRASES.get(err.validator_value, err.validator_value)}"
        if err.validator == "format":
            return f"invalid CIDR block {err.instance!r}"
        if err.validator == "minimum":
            return f"must be >= {err.validator_value:g}"
        if err.validator == "maximum":
            return f"must be <= {err.validator_value:g}"
        if err.validator == "minLength":
            return f"must be at least {err.validator_value} characters"
        if err.validator == "maxLength":
            return f"must be at most {err.validator_value} characters"
        if err.validator == "enum":
            return "must be one of: " + ", ".join(self.enum)
        if err.validator == "pattern":
            if self.prefix:
                return f"must start with {self.prefix!r}"
            return f"does not match pattern {self.pattern}"
        return err.message


@dataclass
class ResourceSchema:
    resource_type: str
    provider: str
    fields: Dict[str, FieldSpec] = field(default_factory=dict)
    valid_parent_types: Tuple[str, ...] = ()
    valid_child_types: Tuple[str, ...] = ()

    def json_schema(self) -> Dict[str, Any]:
        return {
            "$schema": "https://json-schema.org/draft/2020-12/schema",
            "type": "object",
            "properties": {name: spec.json_schema() for name, spec in self.fields.items()},
            "required": [name for name, spec in self.fields.items() if spec.required],
        }

    @cached_property
    def validator(self) -> Draft202012Validator:
        return Draft202012Validator(self.json_schema(), format_checker=FORMAT_CHECKER)

    def check_properties(self, properties: Dict[str, Any]) -> List[str]:
        instance: Dict[str, Any] = {}
        for name, value in properties.items():
            # empty values count as absent
            if value is None or value == "":
                continue
            spec = self.fields.get(name)
            instance[name] = spec.coerce(value) if spec else value

        problems: List[str] = []
        errors = sorted(self.validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
        for err in errors:
            if err.validator == "required":
                missing = [name for name in err.validator_value if name not in err.instance]
                problems.extend(f"missing required property {name!r}" for name in missing)
                continue
            name = str(err.path[0]) if err.path else ""
            spec = self.fields.get(name)
            if spec is None:
                problems.append(err.message)
                continue
            problems.append(f"property {name!r} {spec.describe(err)}")
        # one required error is raised per missing name, each listing them all
        return list(dict.fromkeys(problems))


class SchemaRegistry:
    def __init__(self) -> None:
        self._schemas: Dict[Tuple[str, str], ResourceSchema] = {}

    def register(self, schema: ResourceSchema) -> None:
        self._schemas[(schema.provider, schema.resource_type)] = schema

    def get(self, provider: str, resource_type: str) -> Optional[ResourceSchema]:
        return self._schemas.get((provider, resource_type))

    def resource_types(self, provider: str) -> List[str]:
        return sorted(rtype for prov, rtype in self._schemas if prov == provider)

    def providers(self) -> List[str]:
        return sorted({prov for prov, _ in self._schemas})


def _fields(*specs: FieldSpec) -> Dict[str, FieldSpec]:
    return {spec.name: spec for spec in specs}


_NAME = FieldSpec("name", max_length=255)


def aws_schemas() -> Iterable[ResourceSchema]:
    yield ResourceSchema(
        "region",
        "aws",
        _fields(FieldSpec("name", required=True, pattern=r"[a-z]{2}(-[a-z]+)+-\d")),
        valid_child_types=("vpc", "s3", "dynamodb", "lambda"),
    )
    yield ResourceSchema(
        "vpc",
        "aws",
        _fields(
            _NAME,
            FieldSpec("cidr", FieldType.CIDR, required=True),
            FieldSpec("enableDnsHostnames", FieldType.BOOL),
            FieldSpec("enableDnsSupport", FieldType.BOOL),
        ),
        valid_parent_types=("region",),
        valid_child_types=("subnet", "security-group", "internet-gateway", "route-table", "load-balancer"),
    )
    yield ResourceSchema(
        "subnet",
        "aws",
        _fields(
            _NAME,
            FieldSpec("cidr", FieldType.CIDR, required=True),
            FieldSpec("availabilityZone", pattern=r"[a-z]{2}(-[a-z]+)+-\d[a-z]"),
            FieldSpec("mapPublicIpOnLaunch", FieldType.BOOL),
        ),
        valid_parent_types=("vpc",),
        valid_child_types=("ec2", "nat-gateway", "rds", "lambda"),
    )
    yield ResourceSchema(
        "ec2",
        "aws",
        _fields(
            _NAME,
            FieldSpec("instanceType", required=True, pattern=r"[a-z0-9]+\.[a-z0-9]+"),
            FieldSpec("ami", prefix="ami-"),
            FieldSpec("subnetId"),
        ),
        valid_parent_types=("subnet",),
    )
    yield ResourceSchema(
        "security-group",
        "aws",
        _fields(_NAME, FieldSpec("description", max_length=255), FieldSpec("ingress", FieldType.ARRAY)),
        valid_parent_types=("vpc",),
    )
    yield ResourceSchema("route-table", "aws", _fields(_NAME, FieldSpec("routes", FieldType.ARRAY)), valid_parent_types=("vpc",))
    yield ResourceSchema("internet-gateway", "aws", _fields(_NAME), valid_parent_types=("vpc",))
    yield ResourceSchema(
        "nat-gateway",
        "aws",
        _fields(_NAME, FieldSpec("connectivityType", enum=("public", "private"))),
        valid_parent_types=("subnet",),
    )
    yield ResourceSchema("elastic-ip", "aws", _fields(_NAME, FieldSpec("domain", enum=("vpc", "standard"))))
    yield ResourceSchema(
        "lambda",
        "aws",
        _fields(
            _NAME,
            FieldSpec("functionName", max_length=64, pattern=r"[A-Za-z0-9_-]+"),
            FieldSpec(
                "runtime",
                enum=("python3.10", "python3.11", "python3.12", "nodejs18.x", "nodejs20.x", "java17", "go1.x"),
            ),
            FieldSpec("handler"),
            FieldSpec("memorySize", FieldType.INT, min_value=128, max_value=10240),
            FieldSpec("timeout", FieldType.INT, min_value=1, max_value=900),
        ),
        valid_parent_types=("region", "subnet"),
    )
    yield ResourceSchema(
        "s3",
        "aws",
        _fields(
            FieldSpec("bucket", min_length=3, max_length=63, pattern=r"[a-z0-9][a-z0-9.-]*[a-z0-9]"),
            FieldSpec("versioning", FieldType.BOOL),
        ),
        valid_parent_types=("region",),
    )
    yield ResourceSchema(
        "rds",
        "aws",
        _fields(
            _NAME,
            FieldSpec("engine", enum=("mysql", "postgres", "mariadb", "aurora-mysql", "aurora-postgresql")),
            FieldSpec("instanceClass", prefix="db."),
            FieldSpec("allocatedStorage", FieldType.INT, min_value=20, max_value=65536),
            FieldSpec("multiAz", FieldType.BOOL),
        ),
        valid_parent_types=("subnet", "vpc"),
    )
    yield ResourceSchema(
        "dynamodb",
        "aws",
        _fields(
            _NAME,
            FieldSpec("hashKey"),
            FieldSpec("billingMode", enum=("PROVISIONED", "PAY_PER_REQUEST")),
        ),
        valid_parent_types=("region",),
    )
    yield ResourceSchema(
        "load-balancer",
        "aws",
        _fields(
            _NAME,
            FieldSpec("loadBalancerType", enum=("application", "network", "gateway")),
            FieldSpec("internal", FieldType.BOOL),
        ),
        valid_parent_types=("vpc",),
    )
    yield ResourceSchema(
        "target-group",
        "aws",
        _fields(
            _NAME,
            FieldSpec("port", FieldType.INT, min_value=1, max_value=65535),
            FieldSpec("protocol", enum=("HTTP", "HTTPS", "TCP", "UDP", "TLS")),
        ),
        valid_parent_types=("vpc",),
    )
    yield ResourceSchema(
        "listener",
        "aws",
        _fields(
            FieldSpec("port", FieldType.INT, required=True, min_value=1, max_value=65535),
            FieldSpec("protocol", enum=("HTTP", "HTTPS", "TCP", "UDP", "TLS")),
            FieldSpec("loadBalancerId"),
            FieldSpec("targetGroupId"),
        ),
        valid_parent_types=("load-balancer",),
    )
    yield ResourceSchema(
        "auto-scaling-group",
        "aws",
        _fields(
            _NAME,
            FieldSpec("minSize", FieldType.INT, min_value=0),
            FieldSpec("maxSize", FieldType.INT, min_value=0),
            FieldSpec("desiredCapacity", FieldType.INT, min_value=0),
        ),
        valid_parent_types=("vpc", "subnet"),
    )
    yield ResourceSchema(
        "ebs",
        "aws",
        _fields(
            _NAME,
            FieldSpec("size", FieldType.INT, min_value=1, max_value=16384),
            FieldSpec("volumeType", enum=("gp2", "gp3", "io1", "io2", "st1", "sc1", "standard")),
        ),
    )


def default_schema_registry() -> SchemaRegistry:
    registry = SchemaRegistry()
    for schema in aws_schemas():
        registry.register(schema)
    return registry
