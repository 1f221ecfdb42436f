"""Unit tests for entity input checks

Covers models/validation.py
"""

import unittest
import sys
from datetime import datetime
from pathlib import Path

# Add the project root to the path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from models import validation
from models.validation import ValidationError


class TestValidation(unittest.TestCase):
    """Rules applied before writes"""

    def test_partial_payloads_only_check_given_fields(self):
        validation.validate_group({"course": 2})
        validation.validate_lesson_template({"weekly_frequency": 10})

    def test_frequency_bounds(self):
        validation.validate_lesson_template({"weekly_frequency": 1})
        for bad in (0, 11, True, "3"):
            with self.assertRaises(ValidationError):
                validation.validate_lesson_template({"weekly_frequency": bad})

    def test_preferences_must_be_lists(self):
        with self.assertRaises(ValidationError):
            validation.validate_lesson_template({"preferred_days": "Monday"})

    def test_negative_student_count(self):
        with self.assertRaises(ValidationError):
            validation.validate_group({"student_count": -1})

    def test_resources_must_be_mapping(self):
        with self.assertRaises(ValidationError):
            validation.validate_audience({"resources": ["projector"]})

    def test_empty_login(self):
        with self.assertRaises(ValidationError):
            validation.validate_user({"login": ""})

    def test_zero_length_lesson(self):
        moment = datetime(2026, 10, 12, 8, 0)
        with self.assertRaises(ValidationError):
            validation.validate_lesson({"start_at": moment, "end_at": moment})

    def test_message(self):
        try:
            validation.validate_audience({"capacity": 0})
        except ValidationError as e:
            self.assertIn("capacity", str(e))
            self.assertIn("capacity", e.message)
        else:
            self.fail("ValidationError not raised")


if __name__ == "__main__":
    unittest.main()
