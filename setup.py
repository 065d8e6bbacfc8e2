#!/usr/bin/python3

import os
import sys

from cx_Freeze import setup, Executable

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from version import version # pylint: disable=wrong-import-position


# Dependencies are automatically detected, but it might need fine tuning.
build_exe_options = {
    "excludes": ["tkinter", "unittest"],
    'zip_include_packages': ['*'],
    'zip_exclude_packages': ['PySide6',
                             'numpy',
                             'numpy.libs',
                             'shiboken6',
                             'datalog',
                             'ui'],
}


setup(
    version = version, # everything else lives in pyproject.toml
    options = {'build_exe': build_exe_options,
               'bdist_msi': {
                   'initial_target_dir': '[ProgramFilesFolder]\\WPILogSysId',
                   'upgrade_code': '{3D0E6A52-8F1B-4C7E-9B2A-5E4F17C6A9D3}',
               },
               },
    executables = [Executable('gui.py',
                              base='Win32GUI' if sys.platform == 'win32' else None,
                              target_name='wpilog-sysid',
                              shortcut_name='WPILOG SysId Converter',
                              shortcut_dir='StartMenuFolder',
                              )],
)
