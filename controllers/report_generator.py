"""
Controller para geração de relatórios de porte e analytics
"""
import logging
from pathlib import Path
from typing import List, Dict, Any, Optional
from datetime import datetime
import pandas as pd
import json

from models import (
    Procedure,
    PortVerdict,
    ProcedureStatistics,
    EfficiencyMetrics,
    TopProcedure,
)
from utils import format_severity_reason

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Gera relatórios de validação de porte e analytics em diversos formatos."""

    def __init__(
        self,
        procedures: Optional[List[Procedure]] = None,
        verdicts: Optional[List[PortVerdict]] = None,
        statistics: Optional[ProcedureStatistics] = None,
        efficiency: Optional[EfficiencyMetrics] = None,
        top_procedures: Optional[List[TopProcedure]] = None,
        period: Optional[str] = None,
    ):
        """
        Inicializa o gerador de relatórios.

        Args:
            procedures: Procedimentos do período
            verdicts: Vereditos de validação de porte
            statistics: Estatísticas gerais
            efficiency: Métricas de eficiência
            top_procedures: Procedimentos mais realizados
            period: Período do relatório (rótulo)
        """
        self.procedures = procedures or []
        self.verdicts = verdicts or []
        self.statistics = statistics
        self.efficiency = efficiency
        self.top_procedures = top_procedures or []
        self.period = period
        self.df_procedures = None
        self.df_verdicts = None

    @classmethod
    def from_aggregator(cls, aggregator, period: str = "month", date: Any = None, limit: int = 10) -> 'ReportGenerator':
        """
        Monta o relatório consultando um AnalyticsAggregator.
        """
        return cls(
            procedures=aggregator.procedures_by_period(period, date),
            statistics=aggregator.statistics(period, date),
            efficiency=aggregator.efficiency_metrics(period, date),
            top_procedures=aggregator.top_procedures(period, date, limit),
            period=period,
        )

    def prepare_dataframe(self) -> pd.DataFrame:
        """
        Prepara DataFrame com os procedimentos.

        Returns:
            DataFrame com um procedimento por linha
        """
        if self.df_procedures is not None:
            return self.df_procedures

        data = [p.to_dict() for p in self.procedures]
        self.df_procedures = pd.DataFrame(data)
        if not self.df_procedures.empty:
            self.df_procedures['assistants'] = self.df_procedures['assistants'].apply(', '.join)
        return self.df_procedures

    def prepare_verdicts_dataframe(self) -> pd.DataFrame:
        """
        Prepara DataFrame com os vereditos de porte, com a severidade legível.
        """
        if self.df_verdicts is not None:
            return self.df_verdicts

        self.df_verdicts = pd.DataFrame([v.to_dict() for v in self.verdicts])
        if not self.df_verdicts.empty:
            self.df_verdicts['severity_legivel'] = [
                format_severity_reason(v.severity.value if v.has_rule else 'SEM_REGRA')
                for v in self.verdicts
            ]
        return self.df_verdicts

    def export_excel(self, output_path: Path) -> None:
        """
        Exporta relatório completo em Excel com múltiplas abas.

        Args:
            output_path: Caminho para arquivo de saída
        """
        logger.info(f"Gerando relatório Excel: {output_path}")

        df = self.prepare_dataframe()
        df_verdicts = self.prepare_verdicts_dataframe()

        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            # Aba 1: Estatísticas
            self._create_statistics_df().to_excel(writer, sheet_name='Estatísticas', index=False)

            # Aba 2: Procedimentos
            if len(df) > 0:
                df.to_excel(writer, sheet_name='Procedimentos', index=False)

            # Aba 3: Top procedimentos
            if self.top_procedures:
                pd.DataFrame([t.to_dict() for t in self.top_procedures]).to_excel(
                    writer, sheet_name='Top Procedimentos', index=False
                )

            # Abas 4 e 5: Distribuição por categoria e por porte
            if self.statistics is not None:
                for sheet, entries in (
                    ('Por Categoria', self.statistics.by_category),
                    ('Por Porte', self.statistics.by_complexity),
                ):
                    if entries:
                        pd.DataFrame([e.to_dict() for e in entries]).to_excel(
                            writer, sheet_name=sheet, index=False
                        )

            # Aba 6: Validação de porte
            if len(df_verdicts) > 0:
                df_verdicts.to_excel(writer, sheet_name='Validação de Porte', index=False)

                # Aba 7: Divergências
                df_div = df_verdicts[~df_verdicts['is_valid']]
                if len(df_div) > 0:
                    df_div.to_excel(writer, sheet_name='Divergências', index=False)

        logger.info(f"Relatório Excel exportado: {output_path}")

    def _create_statistics_df(self) -> pd.DataFrame:
        """
        Cria DataFrame com estatísticas.

        Returns:
            DataFrame com duas colunas (Métrica, Valor)
        """
        stats_data = [['RESUMO GERAL', ''], ['Período', self.period or '']]

        if self.statistics is not None:
            s = self.statistics
            stats_data += [
                ['Início', s.start_date.strftime('%d/%m/%Y %H:%M')],
                ['Fim', s.end_date.strftime('%d/%m/%Y %H:%M')],
                ['Criados', s.total_created],
                ['Realizados', s.total_performed],
                ['Agendados', s.total_scheduled],
                ['Cancelados', s.total_cancelled],
                ['Taxa de Realização', f"{s.completion_rate:.1f}%"],
                ['Duração Média (min)', round(s.average_duration, 1)],
                ['Valor Médio', round(s.average_price, 2)],
                ['Valor Total', round(s.total_price, 2)],
            ]

        if self.efficiency is not None:
            e = self.efficiency
            stats_data += [
                ['', ''],
                ['EFICIÊNCIA', ''],
                ['No Prazo', e.on_time],
                ['Atrasados', e.late],
                ['Taxa de Pontualidade', f"{e.punctuality_rate:.1f}%"],
                ['Atraso Médio (h)', round(e.average_delay_hours, 2)],
                ['Utilização de Sala', f"{e.room_utilization:.1f}%"],
                ['Procedimentos por Dia', round(e.procedures_per_day, 2)],
            ]

        if self.verdicts:
            invalid = sum(1 for v in self.verdicts if not v.is_valid)
            stats_data += [
                ['', ''],
                ['VALIDAÇÃO DE PORTE', ''],
                ['Validados', len(self.verdicts)],
                ['Sem Regra', sum(1 for v in self.verdicts if not v.has_rule)],
                ['Divergentes', invalid],
                ['Divergência Alta', sum(1 for v in self.verdicts if v.severity.value == 'HIGH')],
            ]

        return pd.DataFrame(stats_data, columns=['Métrica', 'Valor'])

    def export_csv(self, output_path: Path, dataset: str = 'procedures') -> None:
        """
        Exporta procedimentos (ou vereditos) em CSV simples.

        Args:
            output_path: Caminho para arquivo de saída
            dataset: 'procedures' ou 'verdicts'
        """
        logger.info(f"Gerando relatório CSV: {output_path}")

        if dataset == 'verdicts':
            df = self.prepare_verdicts_dataframe()
        else:
            df = self.prepare_dataframe()
        df.to_csv(output_path, index=False, encoding='utf-8-sig')

        logger.info(f"Relatório CSV exportado: {output_path}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generated_at': datetime.now().isoformat(),
            'period': self.period,
            'statistics': self.statistics.to_dict() if self.statistics else None,
            'efficiency': self.efficiency.to_dict() if self.efficiency else None,
            'top_procedures': [t.to_dict() for t in self.top_procedures],
            'verdicts': [v.to_dict() for v in self.verdicts],
            'procedures': [p.to_dict() for p in self.procedures],
        }

    def export_json(self, output_path: Path) -> None:
        """
        Exporta relatório em JSON.

        Args:
            output_path: Caminho para arquivo de saída
        """
        logger.info(f"Gerando relatório JSON: {output_path}")

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2, default=str)

        logger.info(f"Relatório JSON exportado: {output_path}")

    def export_summary_report(self, output_path: Path) -> str:
        """
        Exporta relatório resumido em texto.

        Args:
            output_path: Caminho para arquivo de saída

        Returns:
            Texto do relatório
        """
        logger.info(f"Gerando relatório resumido: {output_path}")

        lines = []
        lines.append("=" * 70)
        lines.append("RELATÓRIO DE PORTE E ANALYTICS CIRÚRGICO")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Data do Relatório: {datetime.now().strftime('%d/%m/%Y %H:%M')}")
        if self.period:
            lines.append(f"Período: {self.period}")
        lines.append("")

        if self.statistics is not None:
            s = self.statistics
            lines.append("-" * 70)
            lines.append("ESTATÍSTICAS")
            lines.append("-" * 70)
            lines.append(f"  Janela:                {s.start_date:%d/%m/%Y} a {s.end_date:%d/%m/%Y}")
            lines.append(f"  Criados:               {s.total_created:4d}")
            lines.append(f"  Realizados:            {s.total_performed:4d}")
            lines.append(f"  Agendados:             {s.total_scheduled:4d}")
            lines.append(f"  Cancelados:            {s.total_cancelled:4d}")
            lines.append(f"  Taxa de Realização:    {s.completion_rate:5.1f}%")
            lines.append(f"  Duração Média:         {s.average_duration:.1f} min")
            lines.append(f"  Valor Total:           R$ {s.total_price:,.2f}")
            lines.append("")

        if self.efficiency is not None:
            e = self.efficiency
            lines.append("-" * 70)
            lines.append("EFICIÊNCIA")
            lines.append("-" * 70)
            lines.append(f"  No Prazo:              {e.on_time:4d}")
            lines.append(f"  Atrasados:             {e.late:4d}")
            lines.append(f"  Pontualidade:          {e.punctuality_rate:5.1f}%")
            lines.append(f"  Atraso Médio:          {e.average_delay_hours:.2f} h")
            lines.append(f"  Utilização de Sala:    {e.room_utilization:5.1f}%")
            lines.append(f"  Procedimentos/Dia:     {e.procedures_per_day:.2f}")
            lines.append("")

        if self.top_procedures:
            lines.append("-" * 70)
            lines.append("PROCEDIMENTOS MAIS REALIZADOS")
            lines.append("-" * 70)
            for t in self.top_procedures:
                lines.append(f"  {t.code:12s} {t.name[:40]:40s} {t.count:4d}")
            lines.append("")

        if self.verdicts:
            lines.append("-" * 70)
            lines.append("DIVERGÊNCIAS DE PORTE")
            lines.append("-" * 70)
            divergent = [v for v in self.verdicts if not v.is_valid]
            if divergent:
                for v in divergent:
                    lines.append(
                        f"  - {v.procedure_code}: informado {v.reported_port}, "
                        f"esperado {v.expected_port} ({format_severity_reason(v.severity.value)})"
                    )
            else:
                lines.append("  ✓ Nenhuma divergência de porte detectada!")
            lines.append("")

        lines.append("=" * 70)

        text = '\n'.join(lines)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(text)

        logger.info(f"Relatório resumido exportado: {output_path}")
        return text
