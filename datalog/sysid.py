# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import contextlib
from dataclasses import dataclass
import json
import logging
import os
import tempfile

import numpy as np

from . import base
from . import resample

logger = logging.getLogger(__name__)

TIMESTAMP_SCALE = 0.000001 # log timestamps are microseconds

# json key, state label
TESTS = (
    ('fast-forward',  'dynamic-forward'),
    ('fast-backward', 'dynamic-reverse'),
    ('slow-forward',  'quasistatic-forward'),
    ('slow-backward', 'quasistatic-reverse'),
)

STATE_SIGNAL_NAMES = ('State',)
STATE_SIGNAL_MARKER = 'sysid-test-state'

ROLES = ('Position', 'Velocity', 'Voltage')

# frame layout
TIME, VOLTAGE, POSITION, VELOCITY = range(4)

@dataclass(eq=False)
class SysIdSignals:
    state: base.Signal
    velocity: base.Signal
    position: base.Signal
    voltage: base.Signal

def _sorted(sig):
    tc = np.asarray(sig.timecodes, dtype=np.int64)
    order = np.argsort(tc, kind='stable')
    return tc[order], order

def _window(sig, lo, hi):
    tc, order = _sorted(sig)
    pick = (tc > lo) & (tc < hi)
    return tc[pick], np.asarray(sig.values, dtype=np.float64)[order][pick]

def phase_window(state, label):
    '''First and last timestamps where the state signal reads label, or None.'''
    tc, order = _sorted(state)
    match = [t for t, idx in zip(tc, order) if state.values[idx] == label]
    if not match:
        return None
    return int(match[0]), int(match[-1])

def phase_frames(label, state, velocity, position, voltage, timestamp_scale=TIMESTAMP_SCALE):
    logger.info('Retrieving test frames for %s', label)
    window = phase_window(state, label)
    if window is None:
        logger.info('No state samples for %s', label)
        return np.zeros((0, 4))

    # priority order for picking the time base when intervals tie
    candidates = [(VELOCITY, 'Velocity', _window(velocity, *window)),
                  (POSITION, 'Position', _window(position, *window)),
                  (VOLTAGE, 'Voltage', _window(voltage, *window))]

    best = None
    best_delta = None
    for slot, name, (tc, _) in candidates:
        try:
            delta = resample.average_interval(tc)
        except base.InsufficientSamplesError:
            logger.debug('%s has %d samples in %s, not usable as time base', name, len(tc), label)
            continue
        logger.debug('%s Avg Delta: %f', name, delta)
        if best_delta is None or delta < best_delta:
            best, best_delta = slot, delta
    if best is None:
        raise base.InsufficientSamplesError(
            'no signal has enough samples during %s to use as a time base' % label)

    base_tc = next(tc for slot, _, (tc, _) in candidates if slot == best)
    frames = np.empty((len(base_tc), 4))
    frames[:, TIME] = base_tc * timestamp_scale
    for slot, _, (tc, values) in candidates:
        if slot == best:
            frames[:, slot] = values
        else:
            frames[:, slot] = resample.interp_many(tc, values, base_tc)

    logger.info('Built %d frames for %s (time base %s)', len(frames), label,
                next(name for slot, name, _ in candidates if slot == best))
    return frames

# Selecting the signals to export

def find_state_signal(catalog):
    for sig in catalog.textual.values():
        if (sig.name in STATE_SIGNAL_NAMES
            or STATE_SIGNAL_MARKER in sig.name.lower()):
            return sig
    return None

def resolve_signals(catalog, velocity, position, voltage):
    state = find_state_signal(catalog)
    if state is None or not len(state):
        raise base.MissingSignalError('State')
    picked = {}
    for role, name in (('Velocity', velocity), ('Position', position), ('Voltage', voltage)):
        sig = catalog.find_numeric(name) if name else None
        if sig is None:
            raise base.MissingSignalError(role)
        picked[role.lower()] = sig
    return SysIdSignals(state=state, **picked)

def sysid_document(signals, timestamp_scale=TIMESTAMP_SCALE):
    doc = {
        'sysid': True,
        'test': 'Simple',
        'units': 'Rotations',
        'unitsPerRotation': 1.0,
    }
    for key, label in TESTS:
        doc[key] = phase_frames(label, signals.state, signals.velocity, signals.position,
                                signals.voltage, timestamp_scale).tolist()
    return doc

@contextlib.contextmanager
def atomic_write(fname):
    dirname = os.path.dirname(os.path.abspath(fname))
    fd, tmpname = tempfile.mkstemp(dir=dirname, prefix='.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wt', encoding='utf-8') as f:
            yield f
        os.replace(tmpname, fname)
    except BaseException:
        os.unlink(tmpname)
        raise

def write_sysid_json(fname, doc):
    with atomic_write(fname) as f:
        json.dump(doc, f)
    logger.info('Wrote SysId data to %s', fname)
