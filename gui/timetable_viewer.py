"""
Timetable viewer widget for displaying schedules
"""
from datetime import date, timedelta
from typing import List
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QComboBox, QPushButton, QTableWidget, QTableWidgetItem,
    QHeaderView, QScrollArea, QFrame
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor
from models.data_models import LessonView
from scheduler.config import SchedulerConfig, DEFAULT_CONFIG
from scheduler.generator import monday_of_week
from scheduler.time_grid import build_time_slots
from scheduler.week import arrange_lessons, week_bounds


class TimetableViewer(QWidget):
    """Widget for viewing timetables in a grid format"""

    def __init__(self, config: SchedulerConfig = DEFAULT_CONFIG):
        super().__init__()
        self.config = config
        self.db_manager = None
        self.days = list(config.working_days)
        self.time_slots = [s.label for s in build_time_slots(config) if s.day == self.days[0]]
        self.week_start = monday_of_week(date.today())

        self.init_ui()

    def init_ui(self):
        """Initialize the user interface"""
        layout = QVBoxLayout(self)

        title_label = QLabel("Timetable Viewer")
        title_label.setStyleSheet("font-size: 18px; font-weight: bold; padding: 10px;")
        title_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(title_label)

        layout.addWidget(self.create_control_panel())

        self.table_scroll = QScrollArea()
        self.table_scroll.setWidgetResizable(True)
        self.table_scroll.setFrameShape(QFrame.Shape.StyledPanel)

        self.table_widget = QTableWidget()
        self.table_widget.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.table_widget.setAlternatingRowColors(True)
        self.setup_table_style()

        self.table_scroll.setWidget(self.table_widget)
        layout.addWidget(self.table_scroll)

        self.status_label = QLabel("Open a database to view the schedule")
        self.status_label.setStyleSheet("padding: 5px; color: #666;")
        layout.addWidget(self.status_label)

    def create_control_panel(self) -> QWidget:
        """Create the control panel with filters"""
        panel = QWidget()
        layout = QHBoxLayout(panel)

        layout.addWidget(QLabel("Group:"))
        self.group_combo = QComboBox()
        self.group_combo.currentIndexChanged.connect(self.refresh_table)
        layout.addWidget(self.group_combo)

        layout.addWidget(QLabel("Teacher:"))
        self.teacher_combo = QComboBox()
        self.teacher_combo.currentIndexChanged.connect(self.refresh_table)
        layout.addWidget(self.teacher_combo)

        layout.addStretch()

        self.prev_btn = QPushButton("◀ Previous week")
        self.prev_btn.clicked.connect(lambda: self.shift_week(-7))
        layout.addWidget(self.prev_btn)

        self.today_btn = QPushButton("This week")
        self.today_btn.clicked.connect(self.current_week)
        layout.addWidget(self.today_btn)

        self.next_btn = QPushButton("Next week ▶")
        self.next_btn.clicked.connect(lambda: self.shift_week(7))
        layout.addWidget(self.next_btn)

        self.group_combo.setEnabled(False)
        self.teacher_combo.setEnabled(False)

        return panel

    def setup_table_style(self):
        """Setup table styling"""
        self.table_widget.setStyleSheet("""
            QTableWidget {
                gridline-color: #d0d0d0;
                font-size: 11px;
            }
            QTableWidget::item {
                padding: 5px;
                border: 1px solid #e0e0e0;
            }
            QTableWidget::item:selected {
                background-color: #e3f2fd;
            }
            QHeaderView::section {
                background-color: #2196F3;
                color: white;
                padding: 8px;
                font-weight: bold;
                border: 1px solid #1976D2;
            }
        """)

    def set_database(self, db_manager):
        self.db_manager = db_manager
        self.populate_filters()
        self.refresh_table()

    def populate_filters(self):
        """Populate group and teacher filters"""
        for combo in (self.group_combo, self.teacher_combo):
            combo.blockSignals(True)
            combo.clear()
            combo.addItem("All", None)

        for group in self.db_manager.get_groups():
            self.group_combo.addItem(group.name, group.id)
        for teacher in self.db_manager.get_teachers():
            self.teacher_combo.addItem(self.db_manager.get_teacher_name(teacher.id) or teacher.id, teacher.id)

        for combo in (self.group_combo, self.teacher_combo):
            combo.blockSignals(False)
            combo.setEnabled(True)

    def shift_week(self, days: int):
        self.week_start += timedelta(days=days)
        self.refresh_table()

    def current_week(self):
        self.week_start = monday_of_week(date.today())
        self.refresh_table()

    def refresh_table(self):
        """Refresh the timetable display"""
        if not self.db_manager:
            return

        start, end = week_bounds(self.week_start)
        lessons = self.db_manager.get_lessons(
            group_id=self.group_combo.currentData(),
            teacher_id=self.teacher_combo.currentData(),
            start=start,
            end=end
        )
        self.display_timetable(lessons)
        self.status_label.setText(
            f"Week of {self.week_start:%d.%m.%Y}: {len(lessons)} lessons"
        )

    def display_timetable(self, lessons: List[LessonView]):
        """Display timetable in grid format"""
        schedule_grid = arrange_lessons(lessons, self.config)

        # Lessons edited by hand may sit outside the generated grid
        rows = list(self.time_slots)
        for _, label in schedule_grid:
            if label not in rows:
                rows.append(label)
        rows.sort()

        self.table_widget.clearContents()
        self.table_widget.setRowCount(len(rows))
        self.table_widget.setColumnCount(len(self.days))

        headers = [
            f"{day}\n{self.week_start + timedelta(days=i):%d.%m}"
            for i, day in enumerate(self.days)
        ]
        self.table_widget.setHorizontalHeaderLabels(headers)
        self.table_widget.setVerticalHeaderLabels(rows)

        for row, time_slot in enumerate(rows):
            for col, day in enumerate(self.days):
                key = (day, time_slot)

                if key in schedule_grid:
                    item = QTableWidgetItem(self.format_cell(schedule_grid[key]))
                    item.setBackground(QColor(232, 245, 233))
                    item.setTextAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignLeft)
                else:
                    item = QTableWidgetItem("")
                    item.setBackground(QColor(250, 250, 250))
                self.table_widget.setItem(row, col, item)

        header = self.table_widget.horizontalHeader()
        for i in range(len(self.days)):
            header.setSectionResizeMode(i, QHeaderView.ResizeMode.Stretch)

        v_header = self.table_widget.verticalHeader()
        for i in range(len(rows)):
            v_header.setSectionResizeMode(i, QHeaderView.ResizeMode.ResizeToContents)

    def format_cell(self, lessons: List[LessonView]) -> str:
        """Format cell content for one or more lessons"""
        blocks = []
        for view in lessons:
            subject = view.subject.short_name if view.subject else view.lesson.subject_id
            group = view.group.name if view.group else view.lesson.group_id
            room = view.audience.name if view.audience else view.lesson.audience_id
            blocks.append("\n".join([
                f"{subject} - {group}",
                f"  👤 {view.teacher_name or view.lesson.teacher_id}",
                f"  🚪 {room}",
            ]))
        return f"\n{'─' * 30}\n".join(blocks)
