"""Konfigurationsmanager: Laden, Speichern, Anzeigen und interaktives Bearbeiten.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table
from rich import box
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import EngineConfig, ReplacementConfig, SubjectRulesConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Scheduling-Engine — Schulkonfiguration
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "time_grid": (
        "Zeitraster",
        "Slots des Tages (Period/Break/Assembly). Doppelstunden nur zwischen\n"
        "direkt benachbarten Perioden, nie über Pausen hinweg.",
    ),
    "subjects": (
        "Fachregeln",
        "Labor-Schlüsselwörter, Religions-Familie und Wahlsprachen-Paar.",
    ),
    "replacement": (
        "Vertretungen",
        "Ablaufzeit offener Angebote und Eskalations-Empfänger.",
    ),
    "storage": (
        "Ablage",
        None,
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "engine_config.yaml"

    def first_run_check(self, path: Optional[Path] = None) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not (path or self.DEFAULT_CONFIG).exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> EngineConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = path or self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py config init' aus."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return EngineConfig.model_validate(dict(raw))
        except Exception as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    def load_or_default(self, path: Optional[Path] = None) -> EngineConfig:
        """Lädt die Config; ohne Datei gelten die Defaults."""
        from config.defaults import default_engine_config
        if self.first_run_check(path):
            return default_engine_config()
        return self.load(path)

    # ─── Speichern ───

    def save(self, config: EngineConfig, path: Optional[Path] = None) -> Path:
        """Speichere Config als YAML mit deutschen Kommentaren."""
        target = path or self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")
        return target

    def _build_commented_yaml(self, config: EngineConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            if field not in cm:
                continue
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        # Inline-Kommentar für die Ablaufzeit
        replacement_map = CommentedMap(cm["replacement"])
        replacement_map.yaml_add_eol_comment("Minuten", "offer_timeout_minutes")
        cm["replacement"] = replacement_map

        return cm

    # ─── Anzeigen ───

    def show(self, config: EngineConfig) -> None:
        """Zeigt Zeitraster und Regeln als Rich-Tabellen."""
        console.print(Panel(
            f"[bold]{config.school_name}[/bold]\n"
            f"Tage/Woche: {config.time_grid.days_per_week} | "
            f"Halbtags-Grenze nach Periode {config.time_grid.half_day_split}",
            title="Konfiguration",
            border_style="cyan",
        ))

        table = Table(title="Zeitraster", box=box.ROUNDED)
        table.add_column("Slot", justify="right", width=5)
        table.add_column("Zeit", width=14)
        table.add_column("Art", width=10)
        table.add_column("Aktiv", width=6)
        for s in config.time_grid.slots:
            table.add_row(
                str(s.slot_number),
                f"{s.start_time}–{s.end_time}",
                s.kind.value,
                "ja" if s.is_active else "[red]nein[/red]",
            )
        console.print(table)

        rules = Table(title="Regeln", box=box.SIMPLE)
        rules.add_column("Parameter", style="bold")
        rules.add_column("Wert")
        for k, v in config.subjects.model_dump().items():
            rules.add_row(f"subjects.{k}", str(v))
        for k, v in config.replacement.model_dump().items():
            rules.add_row(f"replacement.{k}", str(v))
        rules.add_row("storage.state_path", config.storage.state_path)
        console.print(rules)

    # ─── Interaktives Bearbeiten ───

    def edit_interactive(self, config: EngineConfig, path: Optional[Path] = None) -> EngineConfig:
        """Interaktives Bearbeitungsmenü für die Konfiguration."""
        while True:
            console.print()
            console.print(Panel("[bold]Konfiguration bearbeiten[/bold]", border_style="cyan"))
            console.print("  [bold]1.[/bold] Schulname")
            console.print("  [bold]2.[/bold] Fachregeln")
            console.print("  [bold]3.[/bold] Vertretungen")
            console.print("  [bold]0.[/bold] Speichern & Zurück")

            choice = Prompt.ask("\nAuswahl", default="0")

            if choice == "1":
                config = config.model_copy(update={
                    "school_name": Prompt.ask("Schulname", default=config.school_name)})
            elif choice == "2":
                config = config.model_copy(
                    update={"subjects": self._edit_subjects(config.subjects)})
            elif choice == "3":
                config = config.model_copy(
                    update={"replacement": self._edit_replacement(config.replacement)})
            elif choice == "0":
                self.save(config, path)
                break
            else:
                console.print("[yellow]Ungültige Auswahl.[/yellow]")

        return config

    def _edit_subjects(self, rules: SubjectRulesConfig) -> SubjectRulesConfig:
        keywords = Prompt.ask(
            "Labor-Schlüsselwörter (kommagetrennt)", default=", ".join(rules.lab_keywords))
        prefix = Prompt.ask("Präfix Religions-Familie", default=rules.religion_prefix)
        limit = IntPrompt.ask("Maximale Quote pro Zuweisung", default=rules.max_course_limit)
        return rules.model_copy(update={
            "lab_keywords": [k.strip() for k in keywords.split(",") if k.strip()],
            "religion_prefix": prefix,
            "max_course_limit": limit,
        })

    def _edit_replacement(self, rc: ReplacementConfig) -> ReplacementConfig:
        timeout = IntPrompt.ask("Ablaufzeit Angebote (Minuten)", default=rc.offer_timeout_minutes)
        admins = Prompt.ask(
            "Fallback-Admins (kommagetrennt)", default=", ".join(rc.fallback_admin_ids))
        return rc.model_copy(update={
            "offer_timeout_minutes": timeout,
            "fallback_admin_ids": [a.strip() for a in admins.split(",") if a.strip()],
        })
