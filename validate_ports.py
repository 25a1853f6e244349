#!/usr/bin/env python3
"""
Script para validação em lote do porte informado.

Uso:
    python validate_ports.py <planilha_procedimentos> <regras> [--output <diretorio_saida>]
"""
import argparse
import logging
from logging.config import dictConfig
from pathlib import Path
import sys

# Adiciona o diretorio raiz ao path
sys.path.insert(0, str(Path(__file__).parent))

from config import OUTPUT_DIR, LOGGING_CONFIG, ensure_directories
from controllers import ClassificationEngine, ReportGenerator
from models import InMemoryStorage, LoggingEventPublisher
from utils import PorteEngineError
from utils.input_loader import load_engine_settings, load_procedure_rows, load_rules

# Configura logging
ensure_directories()
dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)


def main() -> int:
    """Funcao principal."""
    parser = argparse.ArgumentParser(
        description="Valida o porte informado de procedimentos contra as regras institucionais"
    )
    parser.add_argument(
        "procedures_path",
        type=str,
        help="Caminho para planilha (xlsx/csv) com procedimentos e porte informado",
    )
    parser.add_argument(
        "rules_path",
        type=str,
        help="Caminho para port_rules.json ou planilha de regras",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=str(OUTPUT_DIR),
        help="Diretorio de saida para relatorios",
    )
    parser.add_argument(
        "--sheet",
        "-s",
        type=str,
        default=None,
        help="Nome da aba do Excel (padrao: primeira aba)",
    )
    parser.add_argument(
        "--settings",
        type=str,
        default=None,
        help="YAML com parametros do motor",
    )

    args = parser.parse_args()

    # Valida arquivos
    procedures_path = Path(args.procedures_path)
    if not procedures_path.exists():
        logger.error(f"Planilha nao encontrada: {procedures_path}")
        return 1

    rules_path = Path(args.rules_path)
    if not rules_path.exists():
        logger.error(f"Arquivo de regras nao encontrado: {rules_path}")
        return 1

    # Diretorio de saida
    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 70)
    logger.info("VALIDACAO DE PORTE")
    logger.info("=" * 70)
    logger.info(f"Planilha: {procedures_path}")
    logger.info(f"Regras: {rules_path}")
    logger.info(f"Saida: {output_dir}")
    logger.info("")

    try:
        logger.info("Carregando regras de porte...")
        rules_repo = load_rules(rules_path, args.sheet if rules_path.suffix.lower() != '.json' else None)
        stats = rules_repo.get_statistics()
        logger.info(f"  OK {stats['total_rules']} regras carregadas ({stats['active_rules']} ativas)")

        settings = load_engine_settings(args.settings)
        engine = ClassificationEngine(
            InMemoryStorage(rules_repo),
            publisher=LoggingEventPublisher(),
            settings=settings,
        )

        logger.info("Carregando procedimentos da planilha...")
        rows = load_procedure_rows(procedures_path, args.sheet)
        logger.info(f"  OK {len(rows)} linhas carregadas")
        logger.info("")

        logger.info("Validando porte...")
        verdicts = []
        for idx, row in enumerate(rows):
            if row.get('code') is None or row.get('reported_port') is None:
                logger.warning(f"Linha {idx} sem codigo ou porte informado, ignorada")
                continue
            try:
                verdict, _ = engine.validate_porte(row['code'], row['reported_port'])
            except PorteEngineError as e:
                logger.warning(f"Erro ao validar linha {idx}: {e}")
                continue
            verdicts.append(verdict)
        logger.info(f"  OK {len(verdicts)} portes validados")
        logger.info("")

        # Gera relatorios
        logger.info("Gerando relatorios...")
        report_gen = ReportGenerator(verdicts=verdicts)

        excel_output = output_dir / "validacao_porte.xlsx"
        report_gen.export_excel(excel_output)
        logger.info(f"  OK Excel: {excel_output.name}")

        csv_output = output_dir / "validacao_porte.csv"
        report_gen.export_csv(csv_output, dataset='verdicts')
        logger.info(f"  OK CSV: {csv_output.name}")

        json_output = output_dir / "validacao_porte.json"
        report_gen.export_json(json_output)
        logger.info(f"  OK JSON: {json_output.name}")

        summary_output = output_dir / "validacao_porte_resumo.txt"
        report_gen.export_summary_report(summary_output)
        logger.info(f"  OK Resumo: {summary_output.name}")
        logger.info("")

        total = len(verdicts)
        invalid = sum(1 for v in verdicts if not v.is_valid)
        without_rule = sum(1 for v in verdicts if not v.has_rule)

        logger.info("=" * 70)
        logger.info("RESULTADOS DA VALIDACAO")
        logger.info("=" * 70)
        logger.info(f"Total validado:  {total}")
        logger.info(f"Sem regra ativa: {without_rule}")
        logger.info(f"Divergentes:     {invalid} ({invalid / total * 100 if total else 0:.1f}%)")
        logger.info("=" * 70)
        logger.info(f"Relatorios salvos em: {output_dir}")

        if invalid > 0:
            logger.warning(f"ATENCAO: {invalid} divergencias de porte detectadas!")
            logger.warning("  Revise a aba 'Divergências' no Excel para detalhes.")

        return 0

    except Exception as e:
        logger.error(f"Erro durante validacao: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
