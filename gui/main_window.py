"""
Main window for the timetable scheduler application
"""
import json
import logging
from pathlib import Path
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QTextEdit, QLabel, QFileDialog, QMessageBox,
    QProgressBar, QTabWidget, QComboBox, QTableWidget, QTableWidgetItem,
    QHeaderView
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal
from PyQt6.QtGui import QAction
from database.database_manager import DatabaseManager
from database.errors import RepositoryError
from models.data_models import Role
from scheduler.config import SchedulerConfig, DEFAULT_CONFIG
from scheduler.generator import ScheduleGenerator
from gui.timetable_viewer import TimetableViewer

logger = logging.getLogger(__name__)


class GenerationThread(QThread):
    """Thread for running the schedule generator"""
    finished = pyqtSignal(object)
    failed = pyqtSignal(str)

    def __init__(self, generator: ScheduleGenerator, initiator_id: str):
        super().__init__()
        self.generator = generator
        self.initiator_id = initiator_id

    def run(self):
        try:
            self.finished.emit(self.generator.generate_schedule(self.initiator_id))
        except Exception as e:
            # Already recorded as a FAILED run by the generator
            logger.error("Generation thread stopped: %s", e)
            self.failed.emit(str(e))


class GenerationTab(QWidget):
    """Tab for generating the weekly schedule"""
    generated = pyqtSignal()
    running_changed = pyqtSignal(bool)

    def __init__(self, config: SchedulerConfig = DEFAULT_CONFIG):
        super().__init__()
        self.config = config
        self.db_manager = None
        self.result = None
        self.generation_thread = None

        self.init_ui()

    def init_ui(self):
        layout = QVBoxLayout(self)

        title_label = QLabel("Automatic Schedule Generation")
        title_label.setStyleSheet("font-size: 18px; font-weight: bold; padding: 10px;")
        title_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(title_label)

        button_layout = QHBoxLayout()

        button_layout.addWidget(QLabel("Initiator:"))
        self.initiator_combo = QComboBox()
        button_layout.addWidget(self.initiator_combo)

        self.generate_btn = QPushButton("Generate")
        self.generate_btn.clicked.connect(self.generate)
        self.generate_btn.setEnabled(False)
        button_layout.addWidget(self.generate_btn)

        self.export_btn = QPushButton("Export JSON")
        self.export_btn.clicked.connect(self.export_json)
        self.export_btn.setEnabled(False)
        button_layout.addWidget(self.export_btn)

        layout.addLayout(button_layout)

        self.progress_bar = QProgressBar()
        self.progress_bar.setVisible(False)
        layout.addWidget(self.progress_bar)

        self.status_label = QLabel("Open a database to start")
        self.status_label.setStyleSheet("padding: 5px;")
        layout.addWidget(self.status_label)

        self.output_text = QTextEdit()
        self.output_text.setReadOnly(True)
        self.output_text.setStyleSheet("font-family: monospace;")
        layout.addWidget(self.output_text)

    def log(self, message: str):
        """Append message to output"""
        self.output_text.append(message)

    def set_database(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.result = None
        self.export_btn.setEnabled(False)

        self.initiator_combo.clear()
        for user in db_manager.get_users(role=Role.ADMIN.value):
            if user.active:
                self.initiator_combo.addItem(user.full_name, user.id)

        templates = db_manager.get_lesson_templates()
        rooms = db_manager.get_audiences()
        self.log("========================================")
        self.log(f"Loaded {len(templates)} lesson templates, {len(rooms)} rooms, "
                 f"{len(db_manager.get_groups())} groups")

        has_admin = self.initiator_combo.count() > 0
        self.generate_btn.setEnabled(has_admin)
        self.status_label.setText("Ready" if has_admin else "No active administrator in this database")

    def generate(self):
        """Run generation on a worker thread"""
        initiator_id = self.initiator_combo.currentData()
        if not self.db_manager or not initiator_id:
            return
        if self.is_running():
            return

        self.generate_btn.setEnabled(False)
        self.progress_bar.setVisible(True)
        self.progress_bar.setRange(0, 0)  # Indeterminate
        self.status_label.setText("Generating schedule...")

        generator = ScheduleGenerator(self.db_manager, self.config)
        self.generation_thread = GenerationThread(generator, initiator_id)
        self.generation_thread.finished.connect(self.on_generation_finished)
        self.generation_thread.failed.connect(self.on_generation_failed)
        self.generation_thread.start()
        self.running_changed.emit(True)

    def is_running(self) -> bool:
        return self.generation_thread is not None and self.generation_thread.isRunning()

    def _stop_progress(self):
        self.progress_bar.setVisible(False)
        self.generate_btn.setEnabled(True)
        self.running_changed.emit(False)

    def on_generation_failed(self, message: str):
        self._stop_progress()
        self.status_label.setText("Generation failed")
        self.log("FAILED | Schedule generation failed, see the log for details")
        QMessageBox.critical(self, "Error", "Schedule generation failed.")

    def on_generation_finished(self, result):
        """Handle generator completion"""
        self._stop_progress()
        self.result = result

        if not result.success:
            self.log(f"NOT STARTED | {result.error}")
            self.status_label.setText(result.error)
            QMessageBox.warning(self, "Generation", result.error)
            return

        self.log("\n" + "=" * 50)
        self.log(f"Run {result.run_id}")
        self.log(f"Placed {result.placed_lessons} of {result.total_lessons} lessons "
                 f"in {result.duration_seconds}s")
        if result.conflicts:
            self.log(f"Unplaced: {result.unplaced_lessons}")
            for message in result.conflicts:
                self.log(f"  - {message}")
        self.log("=" * 50)

        self.status_label.setText(f"Generated in {result.duration_seconds}s")
        self.export_btn.setEnabled(True)
        self.generated.emit()

    def export_json(self):
        """Export result to JSON"""
        if not self.result or not self.result.success:
            return

        file_path, _ = QFileDialog.getSaveFileName(
            self,
            "Save Generation Result",
            "generation.json",
            "JSON Files (*.json);;All Files (*)"
        )

        if not file_path:
            return

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(self.result.to_dict(), f, indent=2, ensure_ascii=False)

            self.log(f"\nJSON exported to: {file_path}")
            self.status_label.setText(f"Exported to: {Path(file_path).name}")
        except OSError as e:
            QMessageBox.critical(self, "Error", f"Failed to export JSON:\n{str(e)}")
            self.log(f"Error exporting JSON: {str(e)}")


class RunHistoryTab(QWidget):
    """Table of past generation runs, newest first"""

    COLUMNS = ["Created", "Status", "Placed", "Unplaced", "Quality", "Duration (ms)", "Error"]

    def __init__(self):
        super().__init__()
        self.db_manager = None

        layout = QVBoxLayout(self)
        self.refresh_btn = QPushButton("Refresh")
        self.refresh_btn.clicked.connect(self.refresh)
        layout.addWidget(self.refresh_btn, alignment=Qt.AlignmentFlag.AlignRight)

        self.table_widget = QTableWidget(0, len(self.COLUMNS))
        self.table_widget.setHorizontalHeaderLabels(self.COLUMNS)
        self.table_widget.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.table_widget.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        layout.addWidget(self.table_widget)

    def set_database(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.refresh()

    def refresh(self):
        if not self.db_manager:
            return

        runs = self.db_manager.get_generation_runs()
        self.table_widget.setRowCount(len(runs))
        for row, run in enumerate(runs):
            s = run.summary
            values = [
                f"{run.created_at:%Y-%m-%d %H:%M:%S}" if run.created_at else "",
                run.status,
                s.get("placedLessons", ""),
                s.get("unplacedLessons", ""),
                s.get("quality", ""),
                s.get("durationMs", ""),
                s.get("error", ""),
            ]
            for col, value in enumerate(values):
                self.table_widget.setItem(row, col, QTableWidgetItem(str(value)))


class MainWindow(QMainWindow):
    def __init__(self, db_file: str = None, config: SchedulerConfig = DEFAULT_CONFIG):
        super().__init__()
        self.config = config
        self.db_manager = None
        self.init_ui()

        if db_file:
            self.open_database(db_file)

    def init_ui(self):
        self.setWindowTitle("University Timetable Scheduler")
        self.setGeometry(100, 100, 1200, 800)

        self.open_action = QAction("Open Database...", self)
        self.open_action.triggered.connect(self.choose_database)
        self.menuBar().addMenu("File").addAction(self.open_action)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout(central_widget)

        self.tabs = QTabWidget()

        self.generation_tab = GenerationTab(self.config)
        self.tabs.addTab(self.generation_tab, "Generation")

        self.viewer_tab = TimetableViewer(self.config)
        self.tabs.addTab(self.viewer_tab, "Timetable")

        self.history_tab = RunHistoryTab()
        self.tabs.addTab(self.history_tab, "Run History")

        # Fresh lessons and a new run row after every successful generation
        self.generation_tab.generated.connect(self.viewer_tab.refresh_table)
        self.generation_tab.generated.connect(self.history_tab.refresh)
        # The worker holds the current connection until it finishes
        self.generation_tab.running_changed.connect(
            lambda running: self.open_action.setEnabled(not running)
        )

        layout.addWidget(self.tabs)

    def choose_database(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Select Database File",
            "",
            "Database Files (*.db);;All Files (*)"
        )
        if file_path:
            self.open_database(file_path)

    def open_database(self, file_path: str):
        if self.generation_tab.is_running():
            QMessageBox.warning(self, "Generation", "Wait for schedule generation to finish before switching databases.")
            return

        try:
            db_manager = DatabaseManager(file_path)
        except RepositoryError as e:
            QMessageBox.critical(self, "Error", f"Failed to load database:\n{str(e)}")
            return

        if self.db_manager:
            self.db_manager.close()
        self.db_manager = db_manager

        self.generation_tab.set_database(db_manager)
        self.viewer_tab.set_database(db_manager)
        self.history_tab.set_database(db_manager)
        self.statusBar().showMessage(f"Database: {Path(file_path).name}")
