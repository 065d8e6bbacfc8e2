# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import configparser
from dataclasses import dataclass, field
import typing

from PySide6.QtCore import Signal

from datalog import base
from datalog import sysid

@dataclass(eq=False)
class DataView:
    catalog: typing.Optional[base.Catalog]
    roles: typing.Dict[str, str] # role -> signal name
    busy: bool

    data_change: Signal # catalog or role assignment changed

    config: configparser.ConfigParser = field(default_factory=configparser.ConfigParser)

    def role_of(self, name):
        for role, n in self.roles.items():
            if n == name:
                return role
        return None

    def assign(self, name, role):
        '''Give role to signal name, taking it away from whoever had it.'''
        for r in [r for r, n in self.roles.items() if n == name]:
            del self.roles[r]
        if role:
            self.roles[role] = name
            self.config['main']['role_' + role.lower()] = name

    def restore_roles(self):
        '''Reuse the role assignments from the last log, if the signals exist.'''
        self.roles = {}
        if not self.catalog:
            return
        for role in sysid.ROLES:
            name = self.config.get('main', 'role_' + role.lower(), fallback=None)
            if name and self.catalog.find_numeric(name) is not None:
                self.roles[role] = name

    def timestamp_scale(self):
        return self.config.getfloat('main', 'timestamp_scale', fallback=sysid.TIMESTAMP_SCALE)

    def sysid_signals(self):
        return sysid.resolve_signals(self.catalog,
                                     velocity=self.roles.get('Velocity'),
                                     position=self.roles.get('Position'),
                                     voltage=self.roles.get('Voltage'))
