#!/usr/bin/python3

# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datalog import base, catalog, sysid # pylint: disable=wrong-import-position

def list_signals(cat):
    state = sysid.find_state_signal(cat)
    for name in cat.names:
        start = next(s for s in cat.starts.values() if s.name == name)
        sig = cat.find_signal(name)
        print('%-50s %-12s %8s%s' % (name, start.type,
                                      len(sig) if sig is not None else '-',
                                      '  <- state' if sig is not None and sig is state else ''))

def main(argv=None):
    parser = argparse.ArgumentParser(description='Convert a WPILOG datalog to SysId JSON')
    parser.add_argument('log')
    parser.add_argument('output', nargs='?')
    parser.add_argument('--velocity')
    parser.add_argument('--position')
    parser.add_argument('--voltage')
    parser.add_argument('--timestamp-scale', type=float, default=sysid.TIMESTAMP_SCALE)
    parser.add_argument('--list', action='store_true', help='print the signals in the log')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(name)s %(levelname)s: %(message)s')

    try:
        cat = catalog.WPILOG(args.log)
    except base.InvalidHeaderError as e:
        print('%s: not a datalog (%s)' % (args.log, e), file=sys.stderr)
        return 1

    if args.list or not args.output:
        list_signals(cat)
        return 0

    try:
        signals = sysid.resolve_signals(cat, args.velocity, args.position, args.voltage)
        doc = sysid.sysid_document(signals, args.timestamp_scale)
    except base.MissingSignalError as e:
        print(e, file=sys.stderr)
        return 2
    except base.InsufficientSamplesError as e:
        print(e, file=sys.stderr)
        return 3
    sysid.write_sysid_json(args.output, doc)
    return 0

if __name__ == '__main__':
    sys.exit(main())
