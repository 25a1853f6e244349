#!/usr/bin/env python3
"""
Script para relatório de analytics cirúrgico por período.

Uso:
    python analytics_report.py <planilha_procedimentos> [--period month] [--date 2025-09-30]
"""
import argparse
import logging
from logging.config import dictConfig
from pathlib import Path
import sys

# Adiciona o diretorio raiz ao path
sys.path.insert(0, str(Path(__file__).parent))

from config import OUTPUT_DIR, ANALYTICS_CONFIG, LOGGING_CONFIG, ensure_directories
from controllers import ClassificationEngine, AnalyticsAggregator, ReportGenerator
from models import InMemoryStorage, PortRulesRepository
from utils import PorteEngineError, to_datetime
from utils.input_loader import load_engine_settings, load_procedure_rows, load_rules

# Configura logging
ensure_directories()
dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)


def main() -> int:
    """Funcao principal."""
    parser = argparse.ArgumentParser(
        description="Gera relatorio de analytics de procedimentos cirurgicos"
    )
    parser.add_argument(
        "procedures_path",
        type=str,
        help="Caminho para planilha (xlsx/csv) com procedimentos",
    )
    parser.add_argument(
        "--period",
        "-p",
        type=str,
        default=ANALYTICS_CONFIG["default_period"],
        choices=["day", "week", "month", "quarter", "year"],
        help="Periodo do relatorio",
    )
    parser.add_argument(
        "--date",
        "-d",
        type=str,
        default=None,
        help="Data de referencia (padrao: hoje)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=ANALYTICS_CONFIG["default_limit"],
        help="Quantidade de itens no ranking de procedimentos",
    )
    parser.add_argument(
        "--hospital",
        type=str,
        default=None,
        help="Restringe o relatorio a um hospital",
    )
    parser.add_argument(
        "--rules",
        type=str,
        default=None,
        help="Regras de porte (json/xlsx) para validar o porte informado na importacao",
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

    procedures_path = Path(args.procedures_path)
    if not procedures_path.exists():
        logger.error(f"Planilha nao encontrada: {procedures_path}")
        return 1

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 70)
    logger.info("ANALYTICS CIRURGICO")
    logger.info("=" * 70)
    logger.info(f"Planilha: {procedures_path}")
    logger.info(f"Periodo: {args.period} (referencia: {args.date or 'hoje'})")
    if args.hospital:
        logger.info(f"Hospital: {args.hospital}")
    logger.info("")

    try:
        reference = to_datetime(args.date, "date") if args.date else None
        settings = load_engine_settings(args.settings)
        rules_repo = load_rules(args.rules) if args.rules else PortRulesRepository()

        storage = InMemoryStorage(rules_repo)
        engine = ClassificationEngine(storage, settings=settings)

        logger.info("Importando procedimentos...")
        rows = load_procedure_rows(procedures_path, args.sheet)
        imported = 0
        for idx, row in enumerate(rows):
            try:
                engine.import_procedure(row)
                imported += 1
            except PorteEngineError as e:
                logger.warning(f"Erro ao importar linha {idx}: {e}")
        logger.info(f"  OK {imported}/{len(rows)} procedimentos importados")
        logger.info("")

        aggregator = AnalyticsAggregator(storage, settings=settings, hospital=args.hospital)

        logger.info("Gerando relatorios...")
        report_gen = ReportGenerator.from_aggregator(aggregator, args.period, reference, args.limit)

        stem = f"analytics_{args.period}"
        excel_output = output_dir / f"{stem}.xlsx"
        report_gen.export_excel(excel_output)
        logger.info(f"  OK Excel: {excel_output.name}")

        csv_output = output_dir / f"{stem}.csv"
        report_gen.export_csv(csv_output)
        logger.info(f"  OK CSV: {csv_output.name}")

        json_output = output_dir / f"{stem}.json"
        report_gen.export_json(json_output)
        logger.info(f"  OK JSON: {json_output.name}")

        summary_output = output_dir / f"{stem}_resumo.txt"
        report_gen.export_summary_report(summary_output)
        logger.info(f"  OK Resumo: {summary_output.name}")
        logger.info("")

        stats = report_gen.statistics
        efficiency = report_gen.efficiency
        logger.info("=" * 70)
        logger.info("RESULTADOS")
        logger.info("=" * 70)
        logger.info(f"Criados:            {stats.total_created}")
        logger.info(f"Realizados:         {stats.total_performed}")
        logger.info(f"Taxa de Realizacao: {stats.completion_rate:.1f}%")
        logger.info(f"Pontualidade:       {efficiency.punctuality_rate:.1f}%")
        logger.info(f"Utilizacao de Sala: {efficiency.room_utilization:.1f}%")
        logger.info("=" * 70)
        logger.info(f"Relatorios salvos em: {output_dir}")

        return 0

    except Exception as e:
        logger.error(f"Erro durante geracao do relatorio: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
