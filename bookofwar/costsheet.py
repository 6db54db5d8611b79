"""Render a PDF cost sheet of balanced unit costs."""

from datetime import datetime
from pathlib import Path
from typing import Sequence, Union

from fpdf import FPDF
from fpdf.enums import XPos, YPos

NAME_COL_WIDTH = 120
COST_COL_WIDTH = 40
ROW_HEIGHT = 8


class CostSheetPDF(FPDF):
    def __init__(self, title: str):
        super().__init__()
        self.sheet_title = title

    def header(self):
        if self.page_no() > 1:
            self.set_font('Helvetica', 'I', 8)
            self.cell(0, 10, f'Book of War: {self.sheet_title}', 0, 0, 'C')
            self.ln(10)

    def footer(self):
        self.set_y(-15)
        self.set_font('Helvetica', 'I', 8)
        self.cell(0, 10, f'Page {self.page_no()}', 0, 0, 'C')

    def chapter_title(self, title):
        self.set_font('Helvetica', 'B', 14)
        self.set_fill_color(220, 220, 220)
        self.cell(0, 10, title, 0, new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='L', fill=True)
        self.ln(2)

    def table_header(self):
        self.set_font('Helvetica', 'B', 11)
        self.cell(NAME_COL_WIDTH, ROW_HEIGHT, 'Unit', 1)
        self.cell(COST_COL_WIDTH, ROW_HEIGHT, 'Cost', 1, new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='R')

    def table_row(self, name: str, cost: int):
        self.set_font('Helvetica', '', 10)
        self.cell(NAME_COL_WIDTH, ROW_HEIGHT, name, 1)
        self.cell(COST_COL_WIDTH, ROW_HEIGHT, str(cost), 1, new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='R')


def write_cost_sheet(
    entries: Sequence[tuple[str, int]],
    path: Union[str, Path],
    title: str = 'Unit Costs',
) -> Path:
    """Write (name, cost) entries as a PDF table; returns the path written."""
    path = Path(path)
    pdf = CostSheetPDF(title)
    pdf.set_auto_page_break(auto=True, margin=15)

    pdf.add_page()
    pdf.set_font('Helvetica', 'B', 24)
    pdf.cell(0, 15, 'BOOK OF WAR', 0, new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='C')
    pdf.set_font('Helvetica', 'I', 12)
    pdf.cell(0, 8, f"Generated {datetime.now().strftime('%Y-%m-%d')}", 0,
             new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='C')
    pdf.ln(5)

    pdf.chapter_title(title)
    pdf.table_header()
    for name, cost in entries:
        pdf.table_row(name, cost)

    pdf.output(str(path))
    return path
