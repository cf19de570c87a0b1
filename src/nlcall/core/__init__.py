from .Parameters import SlotSpec, SlotType, Signature, extract_signature, classify_annotation
from .Introspection import FuncInfo, ParamInfo, get_function_details
from .sentinels import NO_VAL

__all__ = [
    "SlotSpec",
    "SlotType",
    "Signature",
    "extract_signature",
    "classify_annotation",
    "FuncInfo",
    "ParamInfo",
    "get_function_details",
    "NO_VAL",
]
