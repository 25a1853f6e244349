import unittest
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import PROCEDURE_COLUMNS
from models import (
    EngineSettings,
    Pagination,
    ProcedureFilter,
    CreateProcedureRequest,
    SurgeryComplexity,
    SurgeryStatus,
    parse_request,
)
from utils import (
    InvalidInput,
    NotFound,
    to_datetime,
    to_local_naive,
    window_days,
    resolve_period_window,
    normalize_yes_no,
    parse_port,
)
from utils.input_loader import (
    load_engine_settings,
    load_procedure_rows,
    parse_cell_datetime,
)


class TestEngineSettings(unittest.TestCase):
    def test_defaults_come_from_config(self):
        settings = EngineSettings()

        self.assertTrue(settings.strict_transitions)
        self.assertEqual(settings.pending_recent_limit, 10)
        self.assertEqual(settings.price_base_rates[SurgeryComplexity.PORTE_ESPECIAL], 8000.0)
        self.assertEqual(settings.complex_min_complexity, SurgeryComplexity.PORTE_3)

    def test_rates_must_grow_with_complexity(self):
        with self.assertRaises(InvalidInput):
            parse_request(EngineSettings, {"price_base_rates": {"PORTE_2": 100}})

    def test_unknown_setting_is_rejected(self):
        with self.assertRaises(InvalidInput):
            parse_request(EngineSettings, {"strict": False})

    def test_load_from_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "engine.yaml"
            path.write_text(
                "strict_transitions: false\n"
                "pending_recent_limit: 5\n"
                "price_base_rates:\n"
                "  porte_1: 600\n",
                encoding="utf-8",
            )

            settings = load_engine_settings(path)

        self.assertFalse(settings.strict_transitions)
        self.assertEqual(settings.pending_recent_limit, 5)
        self.assertEqual(settings.price_base_rates[SurgeryComplexity.PORTE_1], 600.0)
        self.assertEqual(settings.price_base_rates[SurgeryComplexity.PORTE_2], 1500.0)

    def test_no_file_uses_defaults(self):
        self.assertEqual(load_engine_settings(None), EngineSettings())


class TestRequests(unittest.TestCase):
    def test_parse_request_reports_field(self):
        with self.assertRaises(InvalidInput) as ctx:
            parse_request(CreateProcedureRequest, {
                "patient_id": "p", "procedure_code": "c", "procedure_name": "n",
                "category": "GENERAL_SURGERY", "complexity": "PORTE_1",
                "estimated_duration": -5,
            })

        self.assertEqual(ctx.exception.field, "estimated_duration")
        self.assertEqual(ctx.exception.code, "INVALID_INPUT")

    def test_filter_accepts_tokens(self):
        flt = parse_request(ProcedureFilter, {"statuses": ["scheduled", "CONFIRMED"], "complexity": "porte_2"})

        self.assertEqual(flt.statuses, [SurgeryStatus.SCHEDULED, SurgeryStatus.CONFIRMED])
        self.assertEqual(flt.complexity, SurgeryComplexity.PORTE_2)

    def test_pagination_offset(self):
        self.assertEqual(Pagination(page=3, limit=20).offset, 40)

    def test_not_found_serializes(self):
        error = NotFound("Procedure", "abc")

        self.assertEqual(error.to_dict()["error"], "NOT_FOUND")
        self.assertEqual(error.message, "Procedure not found")


class TestDateUtils(unittest.TestCase):
    def test_window_days_is_at_least_one(self):
        moment = datetime(2025, 9, 30, 12, 0)
        self.assertEqual(window_days(moment, moment), 1)

    def test_invalid_period(self):
        with self.assertRaises(InvalidInput):
            resolve_period_window("decade", datetime(2025, 9, 30))

    def test_to_datetime_rejects_garbage(self):
        with self.assertRaises(InvalidInput):
            to_datetime("ontem")
        with self.assertRaises(InvalidInput):
            to_datetime(None)

    def test_offset_timestamps_become_local_naive(self):
        expected = datetime(2025, 9, 30, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

        self.assertEqual(to_datetime("2025-09-30T12:00:00Z"), expected)
        self.assertEqual(to_local_naive(datetime(2025, 9, 30, 12, 0, tzinfo=timezone.utc)), expected)
        self.assertEqual(to_local_naive(datetime(2025, 9, 30, 12, 0)), datetime(2025, 9, 30, 12, 0))

        start, end = resolve_period_window("day", "2025-09-30T12:00:00Z")
        self.assertIsNone(start.tzinfo)
        self.assertLessEqual(start, expected)
        self.assertLessEqual(expected, end)

    def test_parse_helpers(self):
        self.assertEqual(parse_port(3.0), 3)
        self.assertEqual(normalize_yes_no("s"), "SIM")
        self.assertEqual(normalize_yes_no(None), "NAO")


class TestInputLoader(unittest.TestCase):
    def test_parse_cell_datetime(self):
        self.assertEqual(parse_cell_datetime("30/09/2025 14:30"), datetime(2025, 9, 30, 14, 30))
        self.assertEqual(parse_cell_datetime("2025-09-30"), datetime(2025, 9, 30))
        self.assertEqual(parse_cell_datetime(45930), datetime(2025, 9, 30))
        self.assertIsNone(parse_cell_datetime("sem data"))
        self.assertIsNone(parse_cell_datetime(float("nan")))
        self.assertIsNone(parse_cell_datetime(pd.Timestamp("2025-09-30T12:00:00Z")).tzinfo)

    def test_load_procedure_rows_from_csv(self):
        df = pd.DataFrame([
            {
                PROCEDURE_COLUMNS["id"]: "G-1",
                PROCEDURE_COLUMNS["patient_id"]: 1001,
                PROCEDURE_COLUMNS["code"]: 30602246,
                PROCEDURE_COLUMNS["name"]: "Colecistectomia",
                PROCEDURE_COLUMNS["complexity"]: "PORTE_2",
                PROCEDURE_COLUMNS["reported_port"]: 4,
                PROCEDURE_COLUMNS["duration"]: 95,
                PROCEDURE_COLUMNS["status"]: "COMPLETED",
                PROCEDURE_COLUMNS["performed_date"]: "2025-09-10",
                PROCEDURE_COLUMNS["hospital"]: "hosp-1",
            },
            {
                PROCEDURE_COLUMNS["id"]: "G-2",
                PROCEDURE_COLUMNS["patient_id"]: None,
                PROCEDURE_COLUMNS["code"]: 30715016,
                PROCEDURE_COLUMNS["name"]: "Artroplastia",
            },
        ])
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "procedimentos.csv"
            df.to_csv(path, index=False)

            rows = load_procedure_rows(path)

        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row["patient_id"], "1001")
        self.assertEqual(row["code"], "30602246")
        self.assertEqual(row["guia_id"], "G-1")
        self.assertEqual(row["reported_port"], 4)
        self.assertEqual(row["duration"], 95)
        self.assertEqual(row["performed_date"], datetime(2025, 9, 10))
        self.assertNotIn("scheduled_date", row)


if __name__ == "__main__":
    unittest.main()
