#!/usr/bin/env python3
"""
Client GUI - PyQt6 Application

Presentation layer for the transfer session. It renders the session store
and forwards user intents to the controllers.
Features:
- Drop area / file browser for choosing the file to share
- Share button and copyable ticket
- Connection liveness indicator (click to disconnect)
- Ticket input with receive progress bar
"""

import sys
from typing import List, Optional

# PyQt6 imports
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QPushButton, QLineEdit, QProgressBar, QMessageBox, QStatusBar
)
from PyQt6.QtCore import Qt, pyqtSignal

from common.constants import Role
from ticketdrop.session.controller import TransferSession
from ticketdrop.session.liveness import LivenessState
from ticketdrop.ui.path_picker import PathPicker
from ticketdrop.utils.logger import logger


ACCENT = "#4C5EF9"
MUTED = "#D6D6D6"
PANEL = "#F4F7FC"


# ============================================================================
# DROP AREA
# ============================================================================

class DropArea(QWidget):
    """Drag-and-drop target that also offers a browse button."""

    paths_dropped = pyqtSignal(list)  # absolute paths
    browse_requested = pyqtSignal()
    clear_requested = pyqtSignal()

    def __init__(self):
        super().__init__()
        self.setAcceptDrops(True)
        self.setup_ui()

    def setup_ui(self):
        """Setup the drop area UI."""
        self.setMinimumSize(382, 211)
        self.setStyleSheet(f"""
            QWidget {{
                background-color: {PANEL};
                border-radius: 8px;
            }}
        """)
        layout = QVBoxLayout()
        layout.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.hint_label = QLabel("Drag your documents, photos or videos here to\nstart sharing")
        self.hint_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.hint_label.setStyleSheet("color: #595959; font-weight: bold;")
        layout.addWidget(self.hint_label)

        self.or_label = QLabel("OR")
        self.or_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.or_label.setStyleSheet(f"color: {MUTED};")
        layout.addWidget(self.or_label)

        self.browse_btn = QPushButton("Browse Folder")
        self.browse_btn.clicked.connect(self.browse_requested.emit)
        self.browse_btn.setStyleSheet(f"""
            QPushButton {{
                background-color: {ACCENT};
                color: white;
                border: none;
                padding: 10px 17px;
                border-radius: 8px;
            }}
        """)
        layout.addWidget(self.browse_btn, alignment=Qt.AlignmentFlag.AlignCenter)

        self.selected_title = QLabel("File Selected")
        self.selected_title.setStyleSheet(f"color: {ACCENT}; font-weight: bold;")
        layout.addWidget(self.selected_title)

        self.selected_label = QLabel("")
        self.selected_label.setWordWrap(True)
        self.selected_label.setStyleSheet("color: #595959;")
        layout.addWidget(self.selected_label)

        self.remove_btn = QPushButton("Remove")
        self.remove_btn.clicked.connect(self.clear_requested.emit)
        layout.addWidget(self.remove_btn, alignment=Qt.AlignmentFlag.AlignLeft)

        self.setLayout(layout)
        self.show_path("", False)

    def show_path(self, path: str, locked: bool):
        """Switch between the empty prompt and the selected-file view."""
        has_path = bool(path)
        self.hint_label.setVisible(not has_path)
        self.or_label.setVisible(not has_path)
        self.browse_btn.setVisible(not has_path)
        self.selected_title.setVisible(has_path)
        self.selected_label.setVisible(has_path)
        self.selected_label.setText(path)
        self.remove_btn.setVisible(has_path)
        self.remove_btn.setEnabled(not locked)

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event):
        paths = self.local_paths(event.mimeData().urls())
        if paths:
            event.acceptProposedAction()
            self.paths_dropped.emit(paths)
        else:
            event.ignore()

    @staticmethod
    def local_paths(urls) -> List[str]:
        return [url.toLocalFile() for url in urls if url.isLocalFile()]


# ============================================================================
# LIVENESS INDICATOR
# ============================================================================

class LivenessButton(QPushButton):
    """Dot plus 'Connected' caption; clicking it disconnects."""

    def __init__(self):
        super().__init__("● Connected")
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.set_state(LivenessState.DISCONNECTED)

    def set_state(self, state: LivenessState):
        connected = state is LivenessState.CONNECTED
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {PANEL};
                color: {ACCENT if connected else MUTED};
                border: none;
                padding: 6px;
                border-radius: 8px;
                font-size: 9pt;
                font-weight: bold;
            }}
        """)
        self.setToolTip("Click to stop sharing" if state is LivenessState.CONNECTED else "Not connected")


# ============================================================================
# TICKET / RECEIVE WIDGETS
# ============================================================================

class TicketWidget(QWidget):
    """Read-only ticket with a copy button."""

    copy_requested = pyqtSignal()

    def __init__(self):
        super().__init__()
        layout = QHBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)

        self.ticket_field = QLineEdit()
        self.ticket_field.setReadOnly(True)
        self.ticket_field.setStyleSheet(f"""
            QLineEdit {{
                background-color: {PANEL};
                color: {ACCENT};
                font-weight: bold;
                border: none;
                border-radius: 8px;
                padding: 12px;
            }}
        """)
        layout.addWidget(self.ticket_field)

        self.copy_btn = QPushButton("Copy")
        self.copy_btn.setToolTip("Copy ticket to clipboard")
        self.copy_btn.clicked.connect(self.copy_requested.emit)
        layout.addWidget(self.copy_btn)

        self.setLayout(layout)

    def set_ticket(self, ticket: str):
        self.ticket_field.setText(ticket)
        self.setVisible(bool(ticket))


class ReceiveWidget(QWidget):
    """Ticket input, receive button and download progress bar."""

    receive_requested = pyqtSignal(str)  # ticket text

    def __init__(self):
        super().__init__()
        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        input_layout = QHBoxLayout()
        self.ticket_input = QLineEdit()
        self.ticket_input.setPlaceholderText("Paste your ticket")
        self.ticket_input.textChanged.connect(self._update_button)
        self.ticket_input.returnPressed.connect(self.submit)
        input_layout.addWidget(self.ticket_input)

        self.receive_btn = QPushButton("Receive")
        self.receive_btn.clicked.connect(self.submit)
        self.receive_btn.setStyleSheet(f"""
            QPushButton {{
                background-color: {ACCENT};
                color: white;
                border: none;
                padding: 5px 30px;
                border-radius: 8px;
            }}
            QPushButton:disabled {{
                background-color: {MUTED};
            }}
        """)
        input_layout.addWidget(self.receive_btn)
        layout.addLayout(input_layout)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setTextVisible(False)
        self.progress_bar.setMaximumHeight(6)
        self.progress_bar.setVisible(False)
        layout.addWidget(self.progress_bar)

        self.setLayout(layout)
        self._update_button()

    def _update_button(self):
        self.receive_btn.setEnabled(bool(self.ticket_input.text().strip()))

    def submit(self):
        text = self.ticket_input.text()
        if text.strip():
            self.receive_requested.emit(text)

    def show_progress(self, active: bool, percent: float):
        self.progress_bar.setVisible(active)
        self.progress_bar.setValue(int(percent))


# ============================================================================
# MAIN WINDOW
# ============================================================================

class ClientMainWindow(QMainWindow):
    """Main application window."""

    def __init__(self, session: TransferSession, engine_thread=None):
        super().__init__()
        self.session = session
        self.store = session.store
        self.engine_thread = engine_thread
        self.setWindowTitle("TicketDrop")
        self.setup_ui()
        self.setup_connections()
        self.refresh()

    def setup_ui(self):
        """Setup the main window layout."""
        central = QWidget()
        layout = QVBoxLayout()
        layout.setContentsMargins(40, 20, 40, 40)
        layout.setSpacing(20)

        top_row = QHBoxLayout()
        top_row.addStretch()
        self.liveness_btn = LivenessButton()
        top_row.addWidget(self.liveness_btn)
        layout.addLayout(top_row)

        share_row = QHBoxLayout()
        self.drop_area = DropArea()
        share_row.addWidget(self.drop_area)

        share_col = QVBoxLayout()
        self.share_btn = QPushButton("Share")
        self.share_btn.setStyleSheet(f"""
            QPushButton {{
                background-color: {ACCENT};
                color: white;
                border: none;
                padding: 10px 30px;
                border-radius: 8px;
            }}
            QPushButton:disabled {{
                background-color: {MUTED};
            }}
        """)
        share_col.addWidget(self.share_btn)
        self.send_progress = QProgressBar()
        self.send_progress.setRange(0, 100)
        self.send_progress.setVisible(False)
        share_col.addWidget(self.send_progress)
        share_row.addLayout(share_col)
        layout.addLayout(share_row)

        self.ticket_widget = TicketWidget()
        layout.addWidget(self.ticket_widget)

        self.receive_widget = ReceiveWidget()
        layout.addWidget(self.receive_widget)

        central.setLayout(layout)
        self.setCentralWidget(central)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

    def setup_connections(self):
        """Wire widgets to the session controllers."""
        sender = self.session.sender
        receiver = self.session.receiver

        self.drop_area.paths_dropped.connect(sender.on_paths_dropped)
        self.drop_area.browse_requested.connect(sender.choose_file)
        self.drop_area.clear_requested.connect(sender.clear_selection)
        self.share_btn.clicked.connect(sender.share_selected_file)
        self.liveness_btn.clicked.connect(self.session.liveness.activate)
        self.ticket_widget.copy_requested.connect(self.on_copy_ticket)
        self.receive_widget.receive_requested.connect(receiver.receive)

        self.store.state_changed.connect(self.refresh)
        self.session.liveness.state_changed.connect(self.liveness_btn.set_state)
        sender.share_finished.connect(self.on_share_finished)
        receiver.receive_finished.connect(self.on_receive_finished)
        sender.error_occurred.connect(self.show_error)
        receiver.error_occurred.connect(self.show_error)

    def refresh(self):
        """Render the session store."""
        state = self.store.state
        self.drop_area.show_path(state.selected_path, state.connected)
        self.drop_area.setAcceptDrops(not state.connected and state.role is not Role.RECEIVING)
        self.share_btn.setEnabled(bool(state.selected_path) and state.role is Role.IDLE)
        self.ticket_widget.set_ticket(state.ticket)

        sending = state.role is Role.SENDING and state.transfer_active
        receiving = state.role is Role.RECEIVING and state.transfer_active
        self.send_progress.setVisible(sending)
        self.send_progress.setValue(int(state.progress.percent))
        self.receive_widget.show_progress(receiving, state.progress.percent)

    def on_copy_ticket(self):
        if self.session.copy_ticket(QApplication.clipboard()):
            self.status_bar.showMessage("Ticket copied to clipboard", 3000)

    def on_share_finished(self, result):
        if result.success:
            self.status_bar.showMessage("Sharing - send the ticket to your peer")

    def on_receive_finished(self, result):
        if result.success:
            self.status_bar.showMessage(f"Download complete: {result.path}")

    def show_error(self, message: str):
        logger.warning(f"[GUI] {message}")
        self.status_bar.showMessage(message, 5000)
        QMessageBox.warning(self, "TicketDrop", message)

    def closeEvent(self, event):
        """Stop the engine when the window closes."""
        if self.engine_thread is not None:
            self.engine_thread.stop()
        super().closeEvent(event)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def run_gui(config, argv: Optional[list] = None) -> int:
    """Build the engine, session and window, then run the Qt event loop."""
    from ticketdrop.engine.lan_engine import LanEngine
    from ticketdrop.engine.runner import EngineThread

    app = QApplication(argv if argv is not None else sys.argv)

    engine = LanEngine(**config.get_engine_settings())
    engine_thread = EngineThread(engine)
    engine_thread.start()

    picker = PathPicker(start_dir=config.default_download_dir)
    session = TransferSession(engine, engine_thread, picker=picker, grace_delay_ms=config.grace_delay_ms)
    window = ClientMainWindow(session, engine_thread)
    picker.parent = window
    window.resize(720, 520)
    window.show()

    return app.exec()
