import unittest
import sys
import json
import hashlib
import tempfile
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import RULE_COLUMNS
from models import PortRulesRepository, PortValidationRule, ProcedureCategory
from utils import InvalidInput


class TestPortRulesRepository(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_json_round_trip_with_metadata(self):
        repo = PortRulesRepository([
            PortValidationRule(
                procedure_code="30602246",
                procedure_name="Colecistectomia",
                category=ProcedureCategory.GENERAL_SURGERY,
                minimum_port=2,
                maximum_port=3,
                recommended_port=2,
            ),
            PortValidationRule(
                procedure_code="30715016",
                minimum_port=3,
                maximum_port=4,
                recommended_port=4,
                is_active=False,
            ),
        ])
        rules_path = self.dir / "port_rules.json"

        repo.save_to_json(rules_path)

        meta = json.loads((self.dir / "rules.meta.json").read_text(encoding="utf-8"))
        self.assertEqual(meta["sha256"], hashlib.sha256(rules_path.read_bytes()).hexdigest())
        self.assertEqual(meta["rules_count"], 2)
        self.assertEqual(meta["active_rules"], 1)

        loaded = PortRulesRepository()
        loaded.load_from_json(rules_path)

        rule = loaded.get_active_rule("30602246")
        self.assertEqual(rule.recommended_port, 2)
        self.assertEqual(rule.category, ProcedureCategory.GENERAL_SURGERY)
        self.assertIsNone(loaded.get_active_rule("30715016"))
        self.assertIsNotNone(loaded.get_by_code("30715016"))
        stats = loaded.get_statistics()
        self.assertEqual(stats["total_rules"], 2)
        self.assertEqual(stats["inactive_rules"], 1)
        self.assertEqual(stats["metadata"]["sha256"], meta["sha256"])

    def test_camel_case_export_is_accepted(self):
        rules_path = self.dir / "rules.json"
        rules_path.write_text(json.dumps([
            {"procedureCode": "abc-1", "minimumPort": 1, "maximumPort": 2, "recommendedPort": 1, "isActive": True},
        ]), encoding="utf-8")

        repo = PortRulesRepository()
        repo.load_from_json(rules_path)

        self.assertEqual(repo.get_all_codes(), ["ABC-1"])

    def test_invalid_rule_files_are_rejected(self):
        cases = [
            [],
            [{"procedure_code": "A", "minimum_port": 3, "maximum_port": 2, "recommended_port": 2}],
            [{"procedure_code": "A", "minimum_port": 1, "maximum_port": 2}],
            [
                {"procedure_code": "A", "minimum_port": 1, "maximum_port": 2, "recommended_port": 1},
                {"procedure_code": "a", "minimum_port": 1, "maximum_port": 2, "recommended_port": 1},
            ],
        ]
        for i, rules in enumerate(cases):
            path = self.dir / f"bad_{i}.json"
            path.write_text(json.dumps(rules), encoding="utf-8")
            with self.assertRaises(InvalidInput):
                PortRulesRepository().load_from_json(path)

    def test_rule_range_is_enforced(self):
        with self.assertRaises(InvalidInput):
            PortValidationRule(procedure_code="A", minimum_port=2, maximum_port=3, recommended_port=4)

    def test_load_from_dataframe(self):
        df = pd.DataFrame([
            {"Código": "30602246", "Procedimento": "Colecistectomia", "Categoria": "GENERAL_SURGERY",
             "Porte": "PORTE_2", "Porte Mínimo": 2, "Porte Máximo": 3, "Porte Recomendado": 2, "Ativa": "SIM"},
            {"Código": "30715016", "Procedimento": "Artroplastia", "Categoria": None,
             "Porte": None, "Porte Mínimo": 3, "Porte Máximo": 4, "Porte Recomendado": 3, "Ativa": "NAO"},
            {"Código": None, "Procedimento": "Sem código", "Categoria": None,
             "Porte": None, "Porte Mínimo": 1, "Porte Máximo": 1, "Porte Recomendado": 1, "Ativa": "SIM"},
        ])

        repo = PortRulesRepository()
        count = repo.load_from_dataframe(df, RULE_COLUMNS)

        self.assertEqual(count, 2)
        self.assertTrue(repo.get_by_code("30602246").is_active)
        self.assertFalse(repo.get_by_code("30715016").is_active)
        self.assertIsNone(repo.get_by_code("30715016").category)

    def test_add_rule_replaces_existing_code(self):
        repo = PortRulesRepository()
        repo.add_rule(PortValidationRule(procedure_code="A", minimum_port=1, maximum_port=2, recommended_port=1))
        repo.add_rule(PortValidationRule(procedure_code="a", minimum_port=3, maximum_port=4, recommended_port=3))

        self.assertEqual(len(repo.rules), 1)
        self.assertEqual(repo.get_active_rule("A").minimum_port, 3)


if __name__ == "__main__":
    unittest.main()
