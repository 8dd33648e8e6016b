"""Data models produced by the type-documentation extractor."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class TypeField:
    """One field, parameter or object-shaped return member."""

    name: str
    type: str
    description: Optional[str] = None
    optional: bool = False
    tags: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.description:
            data["description"] = self.description
        if self.optional:
            data["optional"] = True
        if self.tags:
            data["tags"] = dict(self.tags)
        return data


@dataclass
class ReturnField:
    """Return value whose shape is not a field list."""

    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type}


Returns = Union[List[TypeField], ReturnField]


@dataclass
class Signature:
    params: List[TypeField] = field(default_factory=list)
    returns: Returns = field(default_factory=lambda: ReturnField("unknown"))

    def to_dict(self) -> Dict[str, Any]:
        returns: Any
        if isinstance(self.returns, ReturnField):
            returns = self.returns.to_dict()
        else:
            returns = [item.to_dict() for item in self.returns]
        return {"params": [param.to_dict() for param in self.params], "returns": returns}


@dataclass
class TypeDocDefinition:
    """Resolved shape of one exported type, interface or function."""

    name: str
    description: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    file_path: Optional[str] = None
    entries: Optional[List[TypeField]] = None
    signatures: Optional[List[Signature]] = None

    @property
    def is_function(self) -> bool:
        return self.signatures is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.file_path:
            data["filePath"] = self.file_path
        if self.description:
            data["description"] = self.description
        if self.tags:
            data["tags"] = dict(self.tags)
        if self.signatures is not None:
            data["signatures"] = [signature.to_dict() for signature in self.signatures]
        else:
            data["entries"] = [entry.to_dict() for entry in self.entries or []]
        return data


__all__ = ["ReturnField", "Returns", "Signature", "TypeDocDefinition", "TypeField"]
