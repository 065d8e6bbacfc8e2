#!/usr/bin/env python3

# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import configparser
import logging
import os
import sys

from PySide6.QtCore import QSize, QStandardPaths, Signal
from PySide6.QtWidgets import (
    QApplication,
    QDialog,
    QDialogButtonBox,
    QHeaderView,
    QMainWindow,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
)

from datalog import sysid
import ui.datamgr
import ui.state
from version import version

class MainWindow(QMainWindow):
    data_change = Signal()

    def __init__(self):
        super().__init__()

        self.config = configparser.ConfigParser()
        self.config['main'] = {} # base structure initialization
        config_dir = QStandardPaths.writableLocation(QStandardPaths.AppLocalDataLocation)
        os.makedirs(config_dir, exist_ok=True)
        self.config_fname = config_dir + '/config.ini'
        self.config.read(self.config_fname)

        self.data_view = ui.state.DataView(catalog=None,
                                           roles={},
                                           busy=False,
                                           data_change=self.data_change,
                                           config=self.config)

        self.datamgr = ui.datamgr.DataManager(self)
        self.signal_table = ui.datamgr.SignalTable(self.data_view)
        self.setCentralWidget(self.signal_table)
        self.update_title()

        menu = self.menuBar()
        file_menu = menu.addMenu('&File')
        data_menu = menu.addMenu('Data')

        file_menu.addAction('Open log...').triggered.connect(self.datamgr.open_from_file)
        file_menu.addAction('Export SysId JSON...').triggered.connect(self.datamgr.export_sysid)
        file_menu.addSeparator()
        file_menu.addAction('Exit').triggered.connect(self.close)

        data_menu.addAction('Details...').triggered.connect(self.show_details)

        try:
            self.restoreGeometry(bytes.fromhex(self.config.get('main', 'geometry')))
        except configparser.NoOptionError:
            pass

        for f in app.arguments()[1:]:
            self.datamgr.open_file(f)

    def sizeHint(self):
        return QSize(640, 480)

    def update_title(self):
        if self.data_view.catalog:
            self.setWindowTitle('WPILOG SysId Converter %s - %s' % (
                version, os.path.basename(self.data_view.catalog.file_name)))
        else:
            self.setWindowTitle('WPILOG SysId Converter %s' % version)

    def show_details(self):
        cat = self.data_view.catalog
        if not cat:
            return

        details = [('Filename', os.path.basename(cat.file_name)),
                   ('Dirname', os.path.dirname(cat.file_name))]
        if cat.header:
            details.append(('Version', '%d.%d' % cat.header.version_tuple))
            details.append(('Extra header', cat.header.extra_header))
        details.append(('Records', cat.record_count))
        details.append(('Signals', len(cat.names)))
        state = sysid.find_state_signal(cat)
        details.append(('State signal', state.name if state else '<missing>'))
        for entry, metadata in sorted(cat.metadata.items()):
            if entry in cat.starts and metadata:
                details.append(('Metadata/' + cat.starts[entry].name, metadata))

        layout = QVBoxLayout()
        table = QTableWidget(len(details), 2)
        table.setSelectionMode(QTableWidget.NoSelection)
        table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        table.horizontalHeader().hide()
        table.verticalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        table.verticalHeader().hide()
        table.setEditTriggers(QTableWidget.NoEditTriggers)
        for row, (name, val) in enumerate(details):
            table.setItem(row, 0, QTableWidgetItem(name))
            table.setItem(row, 1, QTableWidgetItem(str(val)))
        layout.addWidget(table)

        bbox = QDialogButtonBox(QDialogButtonBox.Close)
        layout.addWidget(bbox)

        dia = QDialog()
        dia.setWindowTitle('Details')
        dia.setLayout(layout)

        bbox.rejected.connect(dia.accept)
        dia.exec()

    def closeEvent(self, e):
        self.config['main']['geometry'] = bytes(self.saveGeometry()).hex()
        with sysid.atomic_write(self.config_fname) as f:
            self.config.write(f)
        e.accept()


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s: %(message)s')

app = QApplication(sys.argv)
app.setApplicationName('WPILogSysId')

window = MainWindow()
window.show()

# Start the event loop.
app.exec()
