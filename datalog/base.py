# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from array import array
from dataclasses import dataclass, field
import enum
import sys
import typing

# We use array and memoryview for efficient operations, but that
# assumes the sizes we expect match the file format.  Lets assert a
# few of those assumptions here.  Our use of struct is safe since it
# has tighter control over byte order and sizing.
assert array('q').itemsize == 8
assert array('d').itemsize == 8
assert sys.byteorder == 'little'

dc_slots = {'slots': True} if sys.version_info.minor >= 10 else {}


class DataLogError(Exception):
    pass

class InvalidHeaderError(DataLogError, ValueError):
    pass

class WrongRecordKindError(DataLogError, TypeError):
    pass

class PayloadDecodeError(DataLogError, ValueError):
    pass

class InsufficientSamplesError(DataLogError, ValueError):
    pass

class MissingSignalError(DataLogError, KeyError):
    def __init__(self, role):
        super().__init__(role)
        self.role = role

    def __str__(self):
        return '%s signal is missing' % self.role


class SignalType(enum.Enum):
    BOOLEAN = 'boolean'
    INT64 = 'int64'
    FLOAT = 'float'
    DOUBLE = 'double'
    STRING = 'string'
    BOOLEAN_ARRAY = 'boolean[]'
    INT64_ARRAY = 'int64[]'
    FLOAT_ARRAY = 'float[]'
    DOUBLE_ARRAY = 'double[]'
    STRING_ARRAY = 'string[]'
    RAW = 'raw'

    @classmethod
    def from_tag(cls, tag):
        '''Anything we don't know how to decode (json, struct:..., msgpack) stays raw.'''
        try:
            return cls(tag)
        except ValueError:
            return cls.RAW


@dataclass(frozen=True)
class LogHeader:
    magic: bytes
    version: int
    extra_header_len: int
    extra_header: str

    @property
    def records_offset(self):
        return 12 + self.extra_header_len

    @property
    def version_tuple(self):
        return (self.version >> 8, self.version & 0xff)

@dataclass(eq=False, **dc_slots)
class Record:
    entry: int
    timestamp: int
    payload: memoryview # slice of the log buffer, not a copy

@dataclass(frozen=True)
class StartPayload:
    entry: int
    name: str
    type: str
    metadata: str

    @property
    def signal_type(self):
        return SignalType.from_tag(self.type)

@dataclass(frozen=True)
class MetadataPayload:
    entry: int
    metadata: str

@dataclass(frozen=True)
class FinishPayload:
    entry: int


@dataclass(eq=False)
class Signal:
    id: int
    name: str
    type: SignalType
    metadata: str = ''
    timecodes: array = field(default_factory=lambda: array('q'), repr=False)
    values: typing.Any = field(default=None, repr=False)

    def __post_init__(self):
        if self.values is None:
            self.values = array('d') if self.type == SignalType.DOUBLE else []

    def __len__(self):
        return len(self.timecodes)

    @property
    def numeric(self):
        return self.type == SignalType.DOUBLE

    def append(self, timestamp, value):
        self.timecodes.append(timestamp)
        self.values.append(value)

@dataclass(eq=False)
class Catalog:
    numeric: typing.Dict[int, Signal]
    textual: typing.Dict[int, Signal]
    names: typing.List[str]
    starts: typing.Dict[int, StartPayload]
    metadata: typing.Dict[int, str]
    finished: typing.Set[int]
    header: typing.Optional[LogHeader] = None
    file_name: str = ''
    record_count: int = 0

    def signals(self):
        return list(self.numeric.values()) + list(self.textual.values())

    def find_signal(self, name):
        for sig in self.signals():
            if sig.name == name:
                return sig
        return None

    def find_numeric(self, name):
        for sig in self.numeric.values():
            if sig.name == name:
                return sig
        return None

    def find_textual(self, name):
        for sig in self.textual.values():
            if sig.name == name:
                return sig
        return None
