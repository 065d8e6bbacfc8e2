# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import logging
import struct

from . import base

logger = logging.getLogger(__name__)

MAGIC = b'WPILOG'
MIN_VERSION = 0x0100

CONTROL_START = 0
CONTROL_FINISH = 1
CONTROL_SET_METADATA = 2

_header_decoder = struct.Struct('<6sHi')
_int32 = struct.Struct('<i')
_uint32 = struct.Struct('<I')
_int64 = struct.Struct('<q')
_float = struct.Struct('<f')
_double = struct.Struct('<d')

def validate_header(buf):
    if len(buf) < 12:
        raise base.InvalidHeaderError('log is too short (%d bytes)' % len(buf))
    magic, version, extra_len = _header_decoder.unpack_from(buf, 0)
    if magic != MAGIC:
        raise base.InvalidHeaderError('bad magic %r' % magic)
    if version < MIN_VERSION:
        raise base.InvalidHeaderError('unsupported version 0x%04x' % version)
    if extra_len < 0 or 12 + extra_len > len(buf):
        raise base.InvalidHeaderError('extra header length %d out of range' % extra_len)
    extra = bytes(buf[12:12 + extra_len]).decode('utf-8', errors='replace')
    return base.LogHeader(magic=bytes(magic), version=version,
                          extra_header_len=extra_len, extra_header=extra)

def _dec_uint(buf, pos, width):
    return int.from_bytes(buf[pos:pos + width], 'little')

def _dec_timestamp(buf, pos, width):
    # full width timestamps are signed 64 bit, like the rest of the log
    return int.from_bytes(buf[pos:pos + width], 'little', signed=width == 8)

def iter_records(buf, pos=None, progress=None):
    '''Yields each complete record in the log.  Running off the end of
    the buffer, even partway through a record, just ends the log.'''
    buf = memoryview(buf)
    if pos is None:
        pos = validate_header(buf).records_offset
    len_buf = len(buf)
    last_progress = None
    while pos < len_buf:
        lenbyte = buf[pos]
        entry_len = (lenbyte & 0x3) + 1
        size_len = ((lenbyte >> 2) & 0x3) + 1
        timestamp_len = ((lenbyte >> 4) & 0x7) + 1
        header_len = 1 + entry_len + size_len + timestamp_len
        if pos + header_len > len_buf:
            break
        entry = _dec_uint(buf, pos + 1, entry_len)
        size = _dec_uint(buf, pos + 1 + entry_len, size_len)
        timestamp = _dec_timestamp(buf, pos + 1 + entry_len + size_len, timestamp_len)
        start = pos + header_len
        if start + size > len_buf:
            break
        pos = start + size
        if progress:
            frac = round(pos / len_buf, 2)
            if frac != last_progress:
                last_progress = frac
                progress(frac)
        yield base.Record(entry, timestamp, buf[start:pos])
    if pos < len_buf:
        logger.debug('ignoring %d trailing bytes at %d', len_buf - pos, pos)

# Control record classification

def is_control(record):
    return record.entry == 0

def _control_type(record, min_len):
    if record.entry != 0 or len(record.payload) < min_len:
        return None
    return record.payload[0]

def is_start(record):
    return _control_type(record, 16) == CONTROL_START

def is_finish(record):
    return _control_type(record, 5) == CONTROL_FINISH

def is_set_metadata(record):
    return _control_type(record, 9) == CONTROL_SET_METADATA

# Payload readers.  Each takes (payload, offset) and returns (value, new offset).

def _need(payload, offset, count):
    if offset < 0 or offset + count > len(payload):
        raise base.PayloadDecodeError('read of %d bytes at %d runs past end of %d byte payload'
                                      % (count, offset, len(payload)))

def read_bool(payload, offset):
    _need(payload, offset, 1)
    return payload[offset] != 0, offset + 1

def read_int32(payload, offset):
    _need(payload, offset, 4)
    return _int32.unpack_from(payload, offset)[0], offset + 4

def read_uint32(payload, offset):
    _need(payload, offset, 4)
    return _uint32.unpack_from(payload, offset)[0], offset + 4

def read_int64(payload, offset):
    _need(payload, offset, 8)
    return _int64.unpack_from(payload, offset)[0], offset + 8

def read_float(payload, offset):
    _need(payload, offset, 4)
    return _float.unpack_from(payload, offset)[0], offset + 4

def read_double(payload, offset):
    _need(payload, offset, 8)
    return _double.unpack_from(payload, offset)[0], offset + 8

def read_string(payload, offset):
    _need(payload, offset, 0)
    return bytes(payload[offset:]).decode('utf-8', errors='replace'), len(payload)

def read_raw(payload, offset):
    _need(payload, offset, 0)
    return bytes(payload[offset:]), len(payload)

def read_lenstr(payload, offset):
    size, offset = read_int32(payload, offset)
    if size < 0:
        raise base.PayloadDecodeError('negative string length %d' % size)
    _need(payload, offset, size)
    return bytes(payload[offset:offset + size]).decode('utf-8', errors='replace'), offset + size

def _fixed_array(fmt, width):
    def reader(payload, offset):
        _need(payload, offset, 0)
        count, extra = divmod(len(payload) - offset, width)
        if extra:
            raise base.PayloadDecodeError('%d trailing bytes in %s array'
                                          % (extra, fmt))
        return list(struct.unpack_from('<%d%s' % (count, fmt), payload, offset)), len(payload)
    return reader

read_int64_array = _fixed_array('q', 8)
read_float_array = _fixed_array('f', 4)
read_double_array = _fixed_array('d', 8)

def read_bool_array(payload, offset):
    _need(payload, offset, 0)
    return [b != 0 for b in payload[offset:]], len(payload)

def read_string_array(payload, offset):
    strings = []
    while offset < len(payload):
        s, offset = read_lenstr(payload, offset)
        strings.append(s)
    return strings, offset

_readers = {
    base.SignalType.BOOLEAN:       read_bool,
    base.SignalType.INT64:         read_int64,
    base.SignalType.FLOAT:         read_float,
    base.SignalType.DOUBLE:        read_double,
    base.SignalType.STRING:        read_string,
    base.SignalType.BOOLEAN_ARRAY: read_bool_array,
    base.SignalType.INT64_ARRAY:   read_int64_array,
    base.SignalType.FLOAT_ARRAY:   read_float_array,
    base.SignalType.DOUBLE_ARRAY:  read_double_array,
    base.SignalType.STRING_ARRAY:  read_string_array,
    base.SignalType.RAW:           read_raw,
}
assert set(_readers) == set(base.SignalType)

def decode_value(signal_type, payload):
    return _readers[signal_type](payload, 0)[0]

# Control record decoding

def decode_start(record):
    if not is_start(record):
        raise base.WrongRecordKindError('decode_start called on a non-start record (entry %d)'
                                        % record.entry)
    entry, pos = read_uint32(record.payload, 1) # skip over control type
    name, pos = read_lenstr(record.payload, pos)
    typ, pos = read_lenstr(record.payload, pos)
    metadata, pos = read_lenstr(record.payload, pos)
    return base.StartPayload(entry, name, typ, metadata)

def decode_set_metadata(record):
    if not is_set_metadata(record):
        raise base.WrongRecordKindError(
            'decode_set_metadata called on a non-metadata record (entry %d)' % record.entry)
    entry, pos = read_uint32(record.payload, 1)
    metadata, pos = read_lenstr(record.payload, pos)
    return base.MetadataPayload(entry, metadata)

def decode_finish(record):
    if not is_finish(record):
        raise base.WrongRecordKindError('decode_finish called on a non-finish record (entry %d)'
                                        % record.entry)
    return base.FinishPayload(read_uint32(record.payload, 1)[0])

