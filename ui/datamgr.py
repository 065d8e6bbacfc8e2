# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import os
import threading
import traceback

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QHeaderView,
    QMessageBox,
    QProgressDialog,
    QTableWidget,
    QTableWidgetItem,
)

from datalog import base
from datalog import catalog
from datalog import sysid

def closure(func, *args):
    return lambda *args2: func(*args, *args2)

class LogLoader(QObject):
    '''Decodes a log on a worker thread.  Results come back through Qt
    signals so they are delivered on the UI thread.'''
    progress = Signal(int, float)
    loaded = Signal(int, object)
    failed = Signal(int, str, str)

    def __init__(self):
        super().__init__()
        self.generation = 0

    def start(self, file_name):
        self.generation += 1
        threading.Thread(target=self.load_worker, args=(self.generation, file_name),
                         daemon=True).start()
        return self.generation

    def abandon(self):
        # No way to interrupt the decode; just forget about it.
        self.generation += 1

    def load_worker(self, generation, file_name):
        try:
            cat = catalog.WPILOG(file_name, closure(self.progress.emit, generation))
        except base.InvalidHeaderError as e:
            self.failed.emit(generation, 'Invalid datalog',
                             'The selected file could not be parsed as a datalog.\n\n%s' % e)
        except Exception as e: # pylint: disable=broad-exception-caught
            traceback.print_exc()
            self.failed.emit(generation, 'Unable to parse',
                             'An exception occurred while importing "%s".\n\n%s'
                             % (file_name, e))
        else:
            self.loaded.emit(generation, cat)

class SignalTable(QTableWidget):
    headings = ['Signal', 'Type', 'Samples', 'Role']

    def __init__(self, data_view):
        super().__init__()
        self.data_view = data_view
        self.setColumnCount(len(self.headings))
        self.setHorizontalHeaderLabels(self.headings)
        self.setSelectionMode(QTableWidget.NoSelection)
        self.setEditTriggers(QTableWidget.NoEditTriggers)
        self.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self.horizontalHeader().setStretchLastSection(True)
        self.verticalHeader().hide()
        data_view.data_change.connect(self.update_rows)

    def update_rows(self):
        cat = self.data_view.catalog
        names = cat.names if cat else []
        self.setRowCount(len(names))
        for row, name in enumerate(names):
            start = next(s for s in cat.starts.values() if s.name == name)
            sig = cat.find_signal(name)
            self.setItem(row, 0, QTableWidgetItem(name))
            self.setItem(row, 1, QTableWidgetItem(start.type))
            count = QTableWidgetItem(str(len(sig)) if sig is not None else '')
            count.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
            self.setItem(row, 2, count)

            if sig is not None and sig.numeric:
                combo = QComboBox()
                combo.addItems(['None'] + list(sysid.ROLES))
                role = self.data_view.role_of(name)
                combo.setCurrentText(role if role else 'None')
                combo.currentTextChanged.connect(closure(self.role_selected, name))
                self.setCellWidget(row, 3, combo)
            else:
                self.removeCellWidget(row, 3)
                self.setItem(row, 3, QTableWidgetItem(''))

    def role_selected(self, name, role):
        self.data_view.assign(name, role if role != 'None' else None)
        # another row may have lost its role
        for row in range(self.rowCount()):
            combo = self.cellWidget(row, 3)
            if combo is not None:
                current = self.data_view.role_of(self.item(row, 0).text())
                combo.blockSignals(True)
                combo.setCurrentText(current if current else 'None')
                combo.blockSignals(False)

class DataManager(QObject):
    def __init__(self, mainwindow):
        super().__init__()
        self.mainwindow = mainwindow
        self.data_view = mainwindow.data_view
        self.config = self.data_view.config
        self.loader = LogLoader()
        self.loader.progress.connect(self.load_progress)
        self.loader.loaded.connect(self.load_done)
        self.loader.failed.connect(self.load_failed)
        self.progress = None
        self.pending = None

    def open_from_file(self):
        file_name = QFileDialog.getOpenFileName(self.mainwindow, 'Open DataLog',
                                                self.config.get('main', 'last_dir', fallback=''),
                                                'DataLog (*.wpilog)')[0]
        if file_name:
            self.config['main']['last_dir'] = os.path.dirname(file_name)
            self.open_file(file_name)

    def open_file(self, file_name):
        if self.data_view.busy:
            return False
        self.data_view.busy = True
        self.mainwindow.statusBar().showMessage('Opening ' + file_name)

        self.progress = QProgressDialog('Processing file', 'Cancel', 0, 100, self.mainwindow)
        self.progress.setWindowModality(Qt.WindowModal)
        self.progress.setMinimumDuration(1000)
        self.progress.canceled.connect(self.cancel_load)
        self.pending = self.loader.start(file_name)
        return True

    def cancel_load(self):
        if self.pending is None:
            return
        self.loader.abandon()
        self.finish_load()
        self.mainwindow.statusBar().showMessage('')

    def finish_load(self):
        self.pending = None
        self.data_view.busy = False
        if self.progress:
            self.progress.reset()
            self.progress.deleteLater()
            self.progress = None

    def load_progress(self, generation, frac):
        if generation == self.pending and self.progress:
            self.progress.setValue(int(frac * 100))

    def load_done(self, generation, cat):
        if generation != self.pending:
            return
        self.finish_load()
        self.data_view.catalog = cat
        self.data_view.restore_roles()
        self.mainwindow.statusBar().showMessage(cat.file_name)
        self.mainwindow.update_title()
        self.data_view.data_change.emit()

    def load_failed(self, generation, title, message):
        if generation != self.pending:
            return
        self.finish_load()
        self.mainwindow.statusBar().showMessage('')
        QMessageBox.critical(self.mainwindow, title, message, QMessageBox.Ok)

    def export_sysid(self):
        if not self.data_view.catalog or self.data_view.busy:
            return False
        try:
            signals = self.data_view.sysid_signals()
        except base.MissingSignalError as e:
            if e.role == 'State':
                text = ('State record is missing, please verify you have selected a valid '
                        'characterization datalog.')
            else:
                text = ('%s is missing, please verify you have selected a signal as the '
                        '%s signal.' % (e.role, e.role))
            QMessageBox.warning(self.mainwindow, str(e).capitalize(), text, QMessageBox.Ok)
            return False

        try:
            doc = sysid.sysid_document(signals, self.data_view.timestamp_scale())
        except base.InsufficientSamplesError as e:
            QMessageBox.critical(self.mainwindow, 'Not enough data', str(e), QMessageBox.Ok)
            return False

        file_name = QFileDialog.getSaveFileName(
            self.mainwindow, 'Save SysId Json',
            os.path.splitext(self.data_view.catalog.file_name)[0] + '.json',
            'SysId (*.json)')[0]
        if not file_name:
            return False
        if not file_name.endswith('.json'):
            file_name += '.json'
        try:
            sysid.write_sysid_json(file_name, doc)
        except OSError as e:
            QMessageBox.critical(self.mainwindow, 'Unable to save',
                                 'Could not write "%s".\n\n%s' % (file_name, e),
                                 QMessageBox.Ok)
            return False
        self.mainwindow.statusBar().showMessage('Wrote ' + file_name)
        return True
