# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import itertools
import struct

import pytest

from datalog import base
from datalog import catalog
from datalog import wpilog

# Header

def test_header_too_short():
    with pytest.raises(base.InvalidHeaderError):
        wpilog.validate_header(b'WPILOG\x00\x01')

def test_header_bad_magic(enc):
    with pytest.raises(base.InvalidHeaderError):
        wpilog.validate_header(enc.header(magic=b'WPILAG'))

def test_header_old_version(enc):
    with pytest.raises(base.InvalidHeaderError):
        wpilog.validate_header(enc.header(version=0x00ff))

def test_header_minimal(enc):
    hdr = wpilog.validate_header(enc.header())
    assert hdr.magic == b'WPILOG'
    assert hdr.version_tuple == (1, 0)
    assert hdr.extra_header == ''
    assert hdr.records_offset == 12

def test_header_extra(enc):
    hdr = wpilog.validate_header(enc.header(version=0x0102, extra='team 254'))
    assert hdr.version_tuple == (1, 2)
    assert hdr.extra_header == 'team 254'
    assert hdr.records_offset == 20

def test_header_extra_overflows():
    buf = struct.pack('<6sHi', b'WPILOG', 0x0100, 100) + b'short'
    with pytest.raises(base.InvalidHeaderError):
        wpilog.validate_header(buf)

# Framing

def _top_bit(width):
    return (1 << (8 * width - 1)) | 1

@pytest.mark.parametrize('widths', list(itertools.product(range(1, 5), range(1, 5), range(1, 9))))
def test_framing_widths(enc, widths):
    entry = _top_bit(widths[0])
    timestamp = _top_bit(widths[2]) if widths[2] < 8 else (1 << 62) | 1
    buf = enc.header() + enc.record(entry, timestamp, b'abcdef', widths)
    records = list(wpilog.iter_records(buf))
    assert len(records) == 1
    rec = records[0]
    assert rec.entry == entry
    assert rec.timestamp == timestamp
    assert bytes(rec.payload) == b'abcdef'

def test_full_width_timestamp_is_signed(enc):
    buf = enc.header() + enc.record(1, 1 << 63, b'', (1, 1, 8))
    assert next(wpilog.iter_records(buf)).timestamp == -(1 << 63)
    buf = enc.header() + enc.record(1, 0xff << 48, b'', (1, 1, 7))
    assert next(wpilog.iter_records(buf)).timestamp == 0xff << 48

def test_payload_is_a_view(enc):
    buf = enc.header() + enc.record(1, 0, b'xyz')
    rec = next(wpilog.iter_records(buf))
    assert isinstance(rec.payload, memoryview)
    assert rec.payload.obj is buf

def test_records_follow_extra_header(enc):
    buf = enc.header(extra='hello') + enc.record(5, 10, b'\x01') + enc.record(6, 20, b'')
    records = list(wpilog.iter_records(buf))
    assert [(r.entry, r.timestamp, bytes(r.payload)) for r in records] == \
        [(5, 10, b'\x01'), (6, 20, b'')]

def test_no_records(enc):
    assert not list(wpilog.iter_records(enc.header()))

@pytest.mark.parametrize('cut', [1, 3, 9])
def test_truncated_tail(enc, cut):
    full = enc.header() + enc.record(1, 10, b'12345678') + enc.record(1, 20, b'abcdefgh')
    records = list(wpilog.iter_records(full[:-cut]))
    assert len(records) == 1
    assert records[0].timestamp == 10
    assert bytes(records[0].payload) == b'12345678'

def test_progress(enc):
    log = enc.LogBuilder()
    log.start(1, 'Velocity', 'double')
    for t in range(500):
        log.double(1, t, float(t))
    seen = []
    catalog.decode(log.to_bytes(), seen.append)
    assert seen
    assert seen == sorted(seen)
    assert len(seen) == len(set(seen))
    assert all(round(f, 2) == f for f in seen)
    assert seen[-1] == 1.0

# Control records

def test_predicates(enc):
    start = next(wpilog.iter_records(enc.header()
                                     + enc.record(0, 0, enc.start_payload(1, 'a', 'double'))))
    assert wpilog.is_control(start)
    assert wpilog.is_start(start)
    assert not wpilog.is_finish(start)
    assert not wpilog.is_set_metadata(start)

    data = base.Record(3, 0, memoryview(b'\x00' * 20))
    assert not wpilog.is_control(data)
    assert not wpilog.is_start(data)

def test_short_control_records():
    # control type byte says start, but too short to hold one
    assert not wpilog.is_start(base.Record(0, 0, memoryview(b'\x00' * 15)))
    assert not wpilog.is_finish(base.Record(0, 0, memoryview(b'\x01\x00\x00')))
    assert not wpilog.is_set_metadata(base.Record(0, 0, memoryview(b'\x02' + b'\x00' * 7)))

def test_decode_start(enc):
    rec = base.Record(0, 0, memoryview(enc.start_payload(42, 'drive/vel', 'double', 'rps')))
    start = wpilog.decode_start(rec)
    assert start == base.StartPayload(42, 'drive/vel', 'double', 'rps')
    assert start.signal_type == base.SignalType.DOUBLE

def test_control_entry_ids_are_unsigned(enc):
    rec = base.Record(0, 0, memoryview(enc.start_payload(0x80000001, 'a', 'double')))
    assert wpilog.decode_start(rec).entry == 0x80000001
    fin = base.Record(0, 0, memoryview(enc.finish_payload(0xffffffff)))
    assert wpilog.decode_finish(fin).entry == 0xffffffff

def test_decode_finish_and_metadata(enc):
    fin = base.Record(0, 0, memoryview(enc.finish_payload(9)))
    assert wpilog.decode_finish(fin) == base.FinishPayload(9)
    meta = base.Record(0, 0, memoryview(enc.metadata_payload(9, '{"source":"nt"}')))
    assert wpilog.decode_set_metadata(meta) == base.MetadataPayload(9, '{"source":"nt"}')

def test_wrong_record_kind(enc):
    data = base.Record(1, 0, memoryview(enc.start_payload(1, 'a', 'double')))
    with pytest.raises(base.WrongRecordKindError):
        wpilog.decode_start(data)
    start = base.Record(0, 0, memoryview(enc.start_payload(1, 'a', 'double')))
    with pytest.raises(TypeError):
        wpilog.decode_finish(start)
    with pytest.raises(base.WrongRecordKindError):
        wpilog.decode_set_metadata(start)

def test_start_with_bad_name_length():
    payload = b'\x00' + struct.pack('<ii', 1, 1000) + b'\x00' * 8
    with pytest.raises(base.PayloadDecodeError):
        wpilog.decode_start(base.Record(0, 0, memoryview(payload)))

# Readers

def test_scalar_readers():
    payload = memoryview(b'\x01' + struct.pack('<iqfd', -5, 1 << 40, 1.5, -2.25))
    val, pos = wpilog.read_bool(payload, 0)
    assert (val, pos) == (True, 1)
    val, pos = wpilog.read_int32(payload, pos)
    assert (val, pos) == (-5, 5)
    val, pos = wpilog.read_int64(payload, pos)
    assert (val, pos) == (1 << 40, 13)
    val, pos = wpilog.read_float(payload, pos)
    assert (val, pos) == (1.5, 17)
    val, pos = wpilog.read_double(payload, pos)
    assert (val, pos) == (-2.25, 25)

@pytest.mark.parametrize('reader,size', [(wpilog.read_int32, 4),
                                         (wpilog.read_int64, 8),
                                         (wpilog.read_float, 4),
                                         (wpilog.read_double, 8),
                                         (wpilog.read_bool, 1)])
def test_read_past_end(reader, size):
    with pytest.raises(base.PayloadDecodeError):
        reader(memoryview(b'\x00' * (size - 1)), 0)
    with pytest.raises(base.PayloadDecodeError):
        reader(memoryview(b'\x00' * size), 1)

def test_read_lenstr(enc):
    payload = memoryview(enc.lenstr('héllo') + enc.lenstr(''))
    s, pos = wpilog.read_lenstr(payload, 0)
    assert s == 'héllo'
    s, pos = wpilog.read_lenstr(payload, pos)
    assert (s, pos) == ('', len(payload))

def test_read_lenstr_errors():
    with pytest.raises(base.PayloadDecodeError):
        wpilog.read_lenstr(memoryview(struct.pack('<i', -1)), 0)
    with pytest.raises(base.PayloadDecodeError):
        wpilog.read_lenstr(memoryview(struct.pack('<i', 4) + b'abc'), 0)

def test_read_string_and_raw():
    payload = memoryview(b'xxdynamic-forward')
    assert wpilog.read_string(payload, 2) == ('dynamic-forward', 17)
    assert wpilog.read_raw(payload, 15) == (b'rd', 17)

def test_array_readers():
    assert wpilog.read_double_array(memoryview(struct.pack('<3d', 1, 2, 3)), 0) == \
        ([1.0, 2.0, 3.0], 24)
    assert wpilog.read_int64_array(memoryview(struct.pack('<2q', -1, 7)), 0) == ([-1, 7], 16)
    assert wpilog.read_float_array(memoryview(b''), 0) == ([], 0)
    assert wpilog.read_bool_array(memoryview(b'\x00\x01\x05'), 0) == ([False, True, True], 3)
    with pytest.raises(base.PayloadDecodeError):
        wpilog.read_double_array(memoryview(b'\x00' * 12), 0)

def test_read_string_array(enc):
    payload = memoryview(enc.lenstr('a') + enc.lenstr('bc'))
    assert wpilog.read_string_array(payload, 0) == (['a', 'bc'], len(payload))
    with pytest.raises(base.PayloadDecodeError):
        wpilog.read_string_array(memoryview(enc.lenstr('abc')[:-1]), 0)

def test_decode_value():
    assert wpilog.decode_value(base.SignalType.DOUBLE, memoryview(struct.pack('<d', 3.0))) == 3.0
    assert wpilog.decode_value(base.SignalType.STRING, memoryview(b'idle')) == 'idle'
    assert wpilog.decode_value(base.SignalType.RAW, memoryview(b'\xff')) == b'\xff'

def test_signal_type_from_tag():
    assert base.SignalType.from_tag('double') == base.SignalType.DOUBLE
    assert base.SignalType.from_tag('string[]') == base.SignalType.STRING_ARRAY
    assert base.SignalType.from_tag('json') == base.SignalType.RAW
    assert base.SignalType.from_tag('struct:Pose2d') == base.SignalType.RAW
