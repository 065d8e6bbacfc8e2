# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import struct
import types

import pytest

def lenstr(s):
    data = s.encode('utf-8')
    return struct.pack('<i', len(data)) + data

def header(version=0x0100, extra='', magic=b'WPILOG'):
    extra = extra.encode('utf-8')
    return struct.pack('<6sHi', magic, version, len(extra)) + extra

def _width(value, limit):
    for n in range(1, limit + 1):
        if value < 1 << (8 * n):
            return n
    raise ValueError('%d does not fit in %d bytes' % (value, limit))

def record(entry, timestamp, payload, widths=None):
    '''One record.  widths is (entry, size, timestamp) byte counts,
    otherwise the smallest that fit are used.'''
    if widths is None:
        widths = (_width(entry, 4), _width(len(payload), 4), _width(timestamp, 8))
    e, s, t = widths
    lenbyte = (e - 1) | ((s - 1) << 2) | ((t - 1) << 4)
    return (bytes([lenbyte])
            + entry.to_bytes(e, 'little')
            + len(payload).to_bytes(s, 'little')
            + timestamp.to_bytes(t, 'little')
            + payload)

def start_payload(entry, name, typ, metadata=''):
    return b'\x00' + struct.pack('<I', entry) + lenstr(name) + lenstr(typ) + lenstr(metadata)

def finish_payload(entry):
    return b'\x01' + struct.pack('<I', entry)

def metadata_payload(entry, metadata):
    return b'\x02' + struct.pack('<I', entry) + lenstr(metadata)

class LogBuilder:
    def __init__(self, version=0x0100, extra=''):
        self.head = header(version, extra)
        self.records = []

    def start(self, entry, name, typ, metadata='', timestamp=0):
        self.records.append(record(0, timestamp, start_payload(entry, name, typ, metadata)))
        return self

    def finish(self, entry, timestamp=0):
        self.records.append(record(0, timestamp, finish_payload(entry)))
        return self

    def set_metadata(self, entry, metadata, timestamp=0):
        self.records.append(record(0, timestamp, metadata_payload(entry, metadata)))
        return self

    def data(self, entry, timestamp, payload):
        self.records.append(record(entry, timestamp, payload))
        return self

    def double(self, entry, timestamp, value):
        return self.data(entry, timestamp, struct.pack('<d', value))

    def string(self, entry, timestamp, text):
        return self.data(entry, timestamp, text.encode('utf-8'))

    def to_bytes(self):
        return self.head + b''.join(self.records)

@pytest.fixture
def enc():
    return types.SimpleNamespace(lenstr=lenstr,
                                 header=header,
                                 record=record,
                                 start_payload=start_payload,
                                 finish_payload=finish_payload,
                                 metadata_payload=metadata_payload,
                                 LogBuilder=LogBuilder)

@pytest.fixture
def sysid_log():
    '''A characterization log: a dynamic-forward phase from 0 to 100 with
    velocity every 10 and position/voltage every 50, plus a
    quasistatic-forward phase from 1000 to 1100.'''
    log = LogBuilder(extra='test')
    log.start(1, 'State', 'string')
    log.start(2, 'Velocity', 'double', 'units=rps')
    log.start(3, 'Position', 'double')
    log.start(4, 'Voltage', 'double')
    log.string(1, 0, 'dynamic-forward')
    for t in range(0, 101, 10):
        log.double(2, t, t / 10.0)
        if t % 50 == 0:
            log.double(3, t, t * 2.0)
            log.double(4, t, 12.0)
    log.string(1, 100, 'dynamic-forward')
    log.string(1, 1000, 'quasistatic-forward')
    for t in range(1000, 1101, 20):
        log.double(2, t, 0.5)
        log.double(3, t, (t - 1000) / 100.0)
        log.double(4, t, t / 1000.0)
    log.string(1, 1100, 'quasistatic-forward')
    return log.to_bytes()
