# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import bisect

import numpy as np

from . import base

def average_interval(timecodes):
    if len(timecodes) < 2:
        raise base.InsufficientSamplesError(
            'need at least two samples to compute an interval, have %d' % len(timecodes))
    tc = np.asarray(timecodes, dtype=np.float64)
    return float(np.sum(np.abs(np.diff(tc)))) / (len(tc) - 1)

def interp(timecodes, values, tc):
    '''Value at tc.  timecodes must be sorted.  Outside of the series we
    hold the first/last value rather than extrapolate.'''
    n = len(timecodes)
    if n == 0:
        raise base.InsufficientSamplesError('cannot interpolate an empty series')
    i = bisect.bisect_left(timecodes, tc)
    if i < n and timecodes[i] == tc:
        return float(values[i])
    if i == 0:
        return float(values[0])
    if i == n:
        return float(values[-1])
    t0 = timecodes[i - 1]
    v0 = float(values[i - 1])
    return v0 + (float(values[i]) - v0) * (tc - t0) / (timecodes[i] - t0)

def interp_many(timecodes, values, tcs):
    '''Same as interp, for an array of timecodes at once.'''
    index = np.asarray(timecodes)
    vals = np.asarray(values, dtype=np.float64)
    tcs = np.asarray(tcs)
    if len(index) == 0:
        raise base.InsufficientSamplesError('cannot interpolate an empty series')
    i = np.searchsorted(index, tcs, side='left')
    hi = np.minimum(i, len(index) - 1)
    lo = np.maximum(i - 1, 0)
    t0 = index[lo]
    span = index[hi] - t0
    v0 = vals[lo]
    v1 = vals[hi]
    # span is only 0 when clamped to an edge, where v0 == v1
    with np.errstate(divide='ignore', invalid='ignore'):
        lerp = v0 + (v1 - v0) * (tcs - t0) / np.where(span == 0, 1, span)
    return np.where(index[hi] == tcs, v1, np.where(span == 0, v0, lerp))
