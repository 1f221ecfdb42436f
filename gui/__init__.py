"""GUI package"""
from .main_window import MainWindow
from .timetable_viewer import TimetableViewer

__all__ = ['MainWindow', 'TimetableViewer']