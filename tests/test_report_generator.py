import unittest
import sys
import json
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from controllers import AnalyticsAggregator, PortValidator, ReportGenerator
from models import (
    InMemoryStorage,
    PortRulesRepository,
    PortValidationRule,
    ProcedureCategory,
    SurgeryComplexity,
)

REFERENCE = datetime(2025, 9, 30, 12, 0)


class TestReportGenerator(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

        storage = InMemoryStorage()
        for i, (minutes, delay) in enumerate([(60, 30), (120, 120)]):
            storage.create_procedure({
                "code": f"3060224{i}",
                "name": "Colecistectomia",
                "patient_id": "pat-1",
                "category": ProcedureCategory.GENERAL_SURGERY,
                "complexity": SurgeryComplexity.PORTE_2,
                "estimated_duration": minutes,
                "base_price": 1500.0,
                "assistants": ["Dr. A", "Dr. B"],
                "scheduled_date": datetime(2025, 9, 29, 8, 0),
                "performed_date": datetime(2025, 9, 29, 8, 0) + timedelta(minutes=delay),
                "created_at": datetime(2025, 9, 20),
            })
        self.aggregator = AnalyticsAggregator(storage)

        validator = PortValidator(PortRulesRepository([
            PortValidationRule(procedure_code="30602240", minimum_port=2, maximum_port=3, recommended_port=2),
        ]))
        self.verdicts = [
            validator.validate("30602240", 2),
            validator.validate("30602240", 5),
            validator.validate("99999999", 1),
        ]

    def tearDown(self):
        self.tmp.cleanup()

    def test_from_aggregator_collects_sections(self):
        report = ReportGenerator.from_aggregator(self.aggregator, "month", REFERENCE)

        self.assertEqual(report.statistics.total_performed, 2)
        self.assertEqual(report.efficiency.late, 1)
        self.assertEqual(len(report.procedures), 2)
        self.assertEqual(len(report.top_procedures), 2)

    def test_export_excel_sheets(self):
        report = ReportGenerator.from_aggregator(self.aggregator, "month", REFERENCE)
        report.verdicts = self.verdicts
        path = self.dir / "relatorio.xlsx"

        report.export_excel(path)

        sheets = pd.ExcelFile(path).sheet_names
        for sheet in ("Estatísticas", "Procedimentos", "Top Procedimentos", "Por Categoria",
                      "Validação de Porte", "Divergências"):
            self.assertIn(sheet, sheets)
        divergences = pd.read_excel(path, sheet_name="Divergências")
        self.assertEqual(len(divergences), 1)

    def test_export_csv_json_and_summary(self):
        report = ReportGenerator(verdicts=self.verdicts)

        csv_path = self.dir / "vereditos.csv"
        report.export_csv(csv_path, dataset="verdicts")
        df = pd.read_csv(csv_path, encoding="utf-8-sig")
        self.assertEqual(len(df), 3)
        self.assertIn("severity_legivel", df.columns)

        json_path = self.dir / "vereditos.json"
        report.export_json(json_path)
        data = json.loads(json_path.read_text(encoding="utf-8"))
        self.assertEqual(len(data["verdicts"]), 3)
        self.assertIsNone(data["statistics"])

        text = report.export_summary_report(self.dir / "resumo.txt")
        self.assertIn("DIVERGÊNCIAS DE PORTE", text)
        self.assertIn("30602240: informado 5, esperado 2", text)

    def test_empty_report(self):
        report = ReportGenerator()
        path = self.dir / "vazio.xlsx"

        report.export_excel(path)
        report.export_csv(self.dir / "vazio.csv")

        self.assertEqual(pd.ExcelFile(path).sheet_names, ["Estatísticas"])


if __name__ == "__main__":
    unittest.main()
