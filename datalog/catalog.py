# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import logging

from . import base
from . import wpilog

logger = logging.getLogger(__name__)

def _lookup(cat, entry):
    sig = cat.numeric.get(entry)
    return sig if sig is not None else cat.textual.get(entry)

def _register(cat, start):
    cat.starts[start.entry] = start
    if start.name not in cat.names:
        cat.names.append(start.name)
    sigtype = start.signal_type
    if sigtype == base.SignalType.DOUBLE:
        series = cat.numeric
    elif sigtype == base.SignalType.STRING:
        series = cat.textual
    else:
        return
    series[start.entry] = base.Signal(start.entry, start.name, sigtype, start.metadata)

def ingest(records, header=None, file_name=''):
    cat = base.Catalog(numeric={}, textual={}, names=[], starts={}, metadata={},
                       finished=set(), header=header, file_name=file_name)
    skipped = 0
    for record in records:
        cat.record_count += 1
        if wpilog.is_start(record):
            start = wpilog.decode_start(record)
            if start.entry == 0:
                logger.warning('Ignoring start record that claims control entry 0 (%s)',
                               start.name)
                continue
            if start.entry in cat.starts:
                # Keep feeding the series we already have.
                logger.warning('Ignoring repeated start for entry %d (%s)',
                               start.entry, start.name)
                continue
            _register(cat, start)
        elif wpilog.is_set_metadata(record):
            meta = wpilog.decode_set_metadata(record)
            cat.metadata[meta.entry] = meta.metadata
            sig = _lookup(cat, meta.entry)
            if sig is not None:
                sig.metadata = meta.metadata
        elif wpilog.is_finish(record):
            cat.finished.add(wpilog.decode_finish(record).entry)
        elif wpilog.is_control(record):
            skipped += 1
        else:
            sig = _lookup(cat, record.entry)
            if sig is None:
                skipped += 1
                continue
            sig.append(record.timestamp, wpilog.decode_value(sig.type, record.payload))

    logger.info('Datalog contains %d records, %d numeric and %d text signals',
                cat.record_count, len(cat.numeric), len(cat.textual))
    if skipped:
        logger.debug('Skipped %d records with no matching signal', skipped)
    return cat

def decode(buf, progress=None, file_name=''):
    header = wpilog.validate_header(buf)
    return ingest(wpilog.iter_records(buf, header.records_offset, progress),
                  header=header, file_name=file_name)

def WPILOG(fname, progress=None):
    # Read it all in once; records are slices of this buffer.
    with open(fname, 'rb') as f:
        buf = f.read()
    logger.info('Importing datalog %s (%d bytes)', fname, len(buf))
    return decode(buf, progress, fname)
