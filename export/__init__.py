"""Export-Modul: Terminal-Anzeige (Rich) für Wochenpläne."""

from export.tui_renderer import print_schedule_table, render_class_rows, render_teacher_rows

__all__ = ["render_class_rows", "render_teacher_rows", "print_schedule_table"]
