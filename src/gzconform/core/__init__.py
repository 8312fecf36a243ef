"""Core models and helpers exposed at the package level."""
from .comparator import Channel, ChannelMismatch, ComparisonPolicy, Match, Mismatch, Verdict, compare
from .formats import GZIP, ByteRange, ContainerFormat, get_format, register_format
from .models import ExitStatusMode, Policy, PreCondition, TestCase
from .outcome import InvocationOutcome

__all__ = [
    "ByteRange",
    "Channel",
    "ChannelMismatch",
    "ComparisonPolicy",
    "ContainerFormat",
    "ExitStatusMode",
    "GZIP",
    "InvocationOutcome",
    "Match",
    "Mismatch",
    "Policy",
    "PreCondition",
    "TestCase",
    "Verdict",
    "compare",
    "get_format",
    "register_format",
]
