"""PDF print view of a thrust stand session."""

import io
import math
from datetime import datetime
from typing import Dict, List, Sequence
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
from reportlab.lib.pagesizes import letter, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, Image, PageBreak
from reportlab.lib.enums import TA_CENTER

from models import DerivedRecord

LOG_COLUMNS = [
    ('throttle', 'Throttle (us)'),
    ('thrust', 'Thrust (g)'),
    ('voltage', 'Voltage (V)'),
    ('current', 'Current (A)'),
    ('power', 'Power (W)'),
    ('rpm', 'RPM'),
    ('efficiency', 'Efficiency (g/W)'),
]


def format_value(value, precision: int = 2) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return '-'
    if isinstance(value, int):
        return str(value)
    return f"{value:.{precision}f}"


class SessionReportGenerator:
    """Generate the printable report for a recorded session."""

    def __init__(self, max_rows: int = 500, precision: int = 2):
        self.max_rows = max_rows
        self.precision = precision
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Create custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=24,
            textColor=colors.HexColor('#1e3a8a'),
            spaceAfter=30,
            alignment=TA_CENTER
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=16,
            textColor=colors.HexColor('#2563eb'),
            spaceAfter=12,
            spaceBefore=12
        ))

    def generate_report(self, records: Sequence[DerivedRecord], summary: Dict,
                        calibration: Dict = None) -> io.BytesIO:
        """Generate PDF report for a session log."""
        buffer = io.BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(letter),
            rightMargin=0.6*inch,
            leftMargin=0.6*inch,
            topMargin=0.6*inch,
            bottomMargin=0.6*inch
        )

        story = []

        story.append(Paragraph("Thrust Stand Session Report", self.styles['CustomTitle']))
        story.extend(self._build_session_section(records, calibration or {}))
        story.append(Spacer(1, 0.2*inch))

        story.extend(self._build_summary_section(summary))

        if summary.get('warnings'):
            story.append(Spacer(1, 0.2*inch))
            story.append(Paragraph("Warnings", self.styles['SectionHeader']))
            for warning in summary['warnings']:
                story.append(Paragraph(f"• {warning}", self.styles['Normal']))

        chart_image = self._generate_session_chart(records)
        if chart_image:
            story.append(PageBreak())
            story.append(Paragraph("Session Chart", self.styles['SectionHeader']))
            story.append(chart_image)

        if records:
            story.append(PageBreak())
            story.extend(self._build_log_section(records))

        doc.build(story)
        buffer.seek(0)
        return buffer

    def _build_session_section(self, records: Sequence[DerivedRecord], calibration: Dict) -> List:
        elements = [Paragraph("Session Information", self.styles['SectionHeader'])]

        if records:
            started = datetime.fromtimestamp(records[0].timestamp).strftime('%Y-%m-%d %H:%M:%S')
        else:
            started = 'N/A'

        data = [
            ['Started:', started],
            ['Samples:', str(len(records))],
            ['Calibration mode:', calibration.get('mode', 'N/A')],
        ]
        for key in ('thrust_factor', 'voltage_factor', 'current_factor'):
            if key in calibration:
                data.append([key.replace('_', ' ').capitalize() + ':', f"{calibration[key]:.4f}"])

        table = Table(data, colWidths=[2*inch, 4*inch])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 11),
            ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#475569')),
            ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
            ('ALIGN', (1, 0), (1, -1), 'LEFT'),
            ('LEFTPADDING', (0, 0), (-1, -1), 8),
            ('RIGHTPADDING', (0, 0), (-1, -1), 8),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        elements.append(table)
        return elements

    def _build_summary_section(self, summary: Dict) -> List:
        elements = [Paragraph("Summary", self.styles['SectionHeader'])]

        best_throttle = summary.get('best_efficiency_throttle')
        rows = [
            ['Metric', 'Value', 'Unit'],
            ['Duration', format_value(summary.get('duration_s', 0.0), 1), 's'],
            ['Peak Thrust', format_value(summary.get('peak_thrust_g', 0.0)), 'g'],
            ['Average Thrust', format_value(summary.get('avg_thrust_g', 0.0)), 'g'],
            ['Peak Power', format_value(summary.get('peak_power_w', 0.0)), 'W'],
            ['Average Power', format_value(summary.get('avg_power_w', 0.0)), 'W'],
            ['Average Efficiency', format_value(summary.get('avg_efficiency_gw', 0.0)), 'g/W'],
            ['Best Efficiency', format_value(summary.get('best_efficiency_gw', 0.0)), 'g/W'],
            ['  at Throttle', str(best_throttle) if best_throttle is not None else '-', 'us'],
            ['Peak RPM', format_value(summary.get('peak_rpm', 0.0), 0), 'rpm'],
            ['Energy Drawn', format_value(summary.get('energy_wh', 0.0), 4), 'Wh'],
        ]

        table = Table(rows, colWidths=[2.5*inch, 1.5*inch, 1*inch])
        table.setStyle(self._grid_style(header_size=11, body_size=10, body_font='Helvetica'))
        elements.append(table)
        return elements

    def _generate_session_chart(self, records: Sequence[DerivedRecord]) -> Image:
        """Thrust, power and efficiency against elapsed time."""
        if len(records) < 2:
            return None

        start = records[0].timestamp
        times = [r.timestamp - start for r in records]

        fig, axes = plt.subplots(3, 1, figsize=(9, 5.5), sharex=True)
        series = [
            ('thrust', 'Thrust (g)', '#ff6384'),
            ('power', 'Power (W)', '#ffcd56'),
            ('efficiency', 'Efficiency (g/W)', '#ff9f40'),
        ]
        for ax, (field, label, color) in zip(axes, series):
            ax.plot(times, [getattr(r, field) for r in records], linewidth=1.5, color=color)
            ax.set_ylabel(label, fontsize=9)
            ax.grid(True, alpha=0.3)
        axes[-1].set_xlabel('Time (s)', fontsize=10)
        fig.suptitle('Session Telemetry', fontsize=12, fontweight='bold')

        plt.tight_layout()

        img_buffer = io.BytesIO()
        plt.savefig(img_buffer, format='png', dpi=150, bbox_inches='tight')
        plt.close(fig)
        img_buffer.seek(0)

        return Image(img_buffer, width=9*inch, height=5.5*inch)

    def _build_log_section(self, records: Sequence[DerivedRecord]) -> List:
        """Recorded data table, down-sampled past max_rows."""
        elements = [Paragraph("Recorded Data", self.styles['SectionHeader'])]

        step = max(1, math.ceil(len(records) / self.max_rows))

        table_data = [[header for _, header in LOG_COLUMNS]]
        for record in records[::step]:
            table_data.append([
                format_value(getattr(record, field), self.precision) for field, _ in LOG_COLUMNS
            ])

        if step > 1:
            note = f"Note: Showing every {step} samples ({len(table_data)-1} of {len(records)} total)"
            elements.append(Paragraph(note, self.styles['Normal']))
            elements.append(Spacer(1, 0.1*inch))

        table = Table(table_data, colWidths=[1.3*inch] * len(LOG_COLUMNS), repeatRows=1)
        table.setStyle(self._grid_style(header_size=9, body_size=8, body_font='Courier'))
        elements.append(table)
        return elements

    @staticmethod
    def _grid_style(header_size: int, body_size: int, body_font: str) -> TableStyle:
        return TableStyle([
            # Header row
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2563eb')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), header_size),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),

            # Data rows
            ('FONTNAME', (0, 1), (-1, -1), body_font),
            ('FONTSIZE', (0, 1), (-1, -1), body_size),
            ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),

            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cbd5e1')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LEFTPADDING', (0, 0), (-1, -1), 6),
            ('RIGHTPADDING', (0, 0), (-1, -1), 6),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),

            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f1f5f9')]),
        ])
