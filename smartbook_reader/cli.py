"""Command-line interface for smartbook-reader."""

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Callable, Iterable

from smartbook_reader import __version__
from smartbook_reader.navigator import ReaderNavigator, ReaderState
from smartbook_reader.progress import format_reading_progress
from smartbook_reader.settings import (
    FONT_FAMILIES,
    FONT_SIZE_RANGE,
    LINE_SPACING_RANGE,
    BackgroundTheme,
    PageTurnStyle,
    TextAlignment,
    value_range,
)
from smartbook_reader.storage import (
    JsonFileBackend,
    ProgressStore,
    SettingsManager,
    SettingsStore,
)
from smartbook_reader.transitions import TransitionAction, transition_for

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".smartbook"

HELP_TEXT = """Comandi:
  n / p       pagina successiva / precedente (invio: successiva)
  ] / [       capitolo successivo / precedente
  g N         vai al capitolo N
  f N         corpo del testo (14-28)
  s N         interlinea (4-16, passo 2)
  t TEMA      tema: dark, sepia, light
  a ALLIN     allineamento: leading, center, trailing
  m STILE     stile pagina: slide, curl, fade
  h           questo aiuto
  q           esci"""


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="smartbook-reader",
        description="Leggi libri EPUB e TXT nel terminale",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument("book_file", help="File EPUB o TXT da aprire")
    parser.add_argument(
        "--book-id",
        default=None,
        help="Identificativo del libro per il progresso (default: nome del file)",
    )
    parser.add_argument(
        "-d", "--data-dir",
        default=str(DEFAULT_DATA_DIR),
        help=f"Directory per progresso e impostazioni (default: {DEFAULT_DATA_DIR})",
    )
    parser.add_argument(
        "-f", "--font-size",
        type=int,
        choices=value_range(*FONT_SIZE_RANGE),
        metavar="{14..28}",
        help="Corpo del testo",
    )
    parser.add_argument(
        "--line-spacing",
        type=int,
        choices=value_range(*LINE_SPACING_RANGE),
        help="Interlinea",
    )
    parser.add_argument("--font-family", choices=FONT_FAMILIES, help="Famiglia di caratteri")
    parser.add_argument("-t", "--theme", choices=[t.value for t in BackgroundTheme], help="Tema")
    parser.add_argument(
        "-a", "--align",
        choices=[a.value for a in TextAlignment],
        help="Allineamento del testo",
    )
    parser.add_argument(
        "--turn-style",
        choices=[s.value for s in PageTurnStyle],
        help="Stile di cambio pagina",
    )
    parser.add_argument("-c", "--chapter", type=int, default=None, help="Apri al capitolo N")
    parser.add_argument(
        "--list-chapters",
        action="store_true",
        help="Elenca i capitoli ed esci",
    )
    parser.add_argument("-w", "--width", type=int, default=80, help="Colonne di testo (default: 80)")
    parser.add_argument("--verbose", action="store_true", help="Abilita log dettagliati")

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    book_path = Path(args.book_file)
    if not book_path.exists():
        parser.error(f"File non trovato: {book_path}")

    from smartbook_reader.sources import import_sources, source_for_path

    import_sources()
    try:
        source = source_for_path(str(book_path))
    except ValueError as e:
        parser.error(str(e))

    try:
        navigator = _build_navigator(args, book_path, source)
    except Exception as e:
        logging.error("Errore: %s", e)
        if args.verbose:
            logging.exception("Dettagli:")
        sys.exit(1)

    try:
        if navigator.open() != ReaderState.READY:
            print(f"Impossibile aprire il libro: {navigator.error}")
            navigator.close()
            sys.exit(1)

        try:
            _start_reading(navigator, args)
        finally:
            navigator.close()
    except KeyboardInterrupt:
        print("\nLettura interrotta.")
    except Exception as e:
        logging.error("Errore: %s", e)
        if args.verbose:
            logging.exception("Dettagli:")
        sys.exit(1)


def _start_reading(navigator: ReaderNavigator, args) -> None:
    if args.list_chapters:
        for i, chapter in enumerate(navigator.chapters):
            print(f"  {i + 1:>4}  {chapter.title}")
        return

    if args.chapter is not None:
        if 1 <= args.chapter <= navigator.chapter_count:
            navigator.go_to_chapter(args.chapter - 1)
        else:
            print(f"Capitolo {args.chapter} non trovato, resto alla posizione salvata")

    print(render_page(navigator, args.width))
    run_session(navigator, _read_commands(), width=args.width)


def _build_navigator(args, book_path: Path, source) -> ReaderNavigator:
    data_dir = Path(args.data_dir).expanduser()
    progress_store = ProgressStore(JsonFileBackend(data_dir / "progress.json"))
    settings_manager = SettingsManager(SettingsStore(JsonFileBackend(data_dir / "settings.json")))

    overrides = {
        "font_size": args.font_size,
        "line_spacing": args.line_spacing,
        "font_family": args.font_family,
        "background_theme": BackgroundTheme(args.theme) if args.theme else None,
        "text_alignment": TextAlignment(args.align) if args.align else None,
        "page_turn_style": PageTurnStyle(args.turn_style) if args.turn_style else None,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        settings_manager.update(**overrides)
        settings_manager.flush()

    return ReaderNavigator(
        book_id=args.book_id or book_path.stem,
        file_path=str(book_path),
        source=source,
        progress_store=progress_store,
        settings_manager=settings_manager,
    )


def _read_commands() -> Iterable[str]:
    while True:
        try:
            yield input("> ")
        except EOFError:
            return


def align_text(text: str, alignment: TextAlignment, width: int) -> str:
    """Wrap text to ``width`` columns and align every line."""
    lines = []
    for paragraph in text.split("\n"):
        wrapped = textwrap.wrap(paragraph, width=width) or [""]
        for line in wrapped:
            if alignment == TextAlignment.CENTER:
                line = line.center(width).rstrip()
            elif alignment == TextAlignment.TRAILING:
                line = line.rjust(width)
            lines.append(line)
    return "\n".join(lines)


def render_page(navigator: ReaderNavigator, width: int = 80) -> str:
    """Current page with a chapter header and a progress footer."""
    page = navigator.current_page
    if page is None:
        return ""
    settings = navigator.settings
    body = align_text(page.content, settings.text_alignment, width)
    # Line spacing maps to blank lines between text lines in the terminal
    if settings.line_spacing >= 12:
        body = body.replace("\n", "\n\n")
    footer = format_reading_progress(
        navigator.current_page_index, navigator.total_pages, width=width,
    )
    return "\n".join([
        page.chapter_title.center(width).rstrip(),
        "─" * width,
        body,
        "─" * width,
        footer,
    ])


def run_session(
    navigator: ReaderNavigator,
    commands: Iterable[str],
    width: int = 80,
    output: Callable[[str], None] = print,
) -> None:
    """Execute reader commands until ``q`` or the input runs out."""
    for line in commands:
        if not execute(navigator, line, output):
            break
        navigator.settings_manager.flush_if_due()
        output(render_page(navigator, width))


def execute(
    navigator: ReaderNavigator,
    line: str,
    output: Callable[[str], None] = print,
) -> bool:
    """Run one command. Returns False when the session should end."""
    parts = line.strip().split()
    if not parts:
        _turn_page(navigator, TransitionAction.NEXT_PAGE, output)
        return True
    command, arg = parts[0].lower(), (parts[1] if len(parts) > 1 else None)

    if command == "q":
        return False
    if command == "n":
        _turn_page(navigator, TransitionAction.NEXT_PAGE, output)
    elif command == "p":
        _turn_page(navigator, TransitionAction.PREVIOUS_PAGE, output)
    elif command == "]":
        navigator.next_chapter()
    elif command == "[":
        navigator.previous_chapter()
    elif command == "g" and arg is not None:
        _go_to_chapter(navigator, arg, output)
    elif command in ("f", "s") and arg is not None:
        _change_number(navigator, command, arg, output)
    elif command in ("t", "a", "m") and arg is not None:
        _change_choice(navigator, command, arg, output)
    elif command == "h":
        output(HELP_TEXT)
    else:
        output(f"Comando non riconosciuto: '{line.strip()}' (h per l'aiuto)")
    return True


def _turn_page(navigator: ReaderNavigator, action: TransitionAction, output) -> None:
    transition = transition_for(navigator.settings, navigator)
    before = navigator.current_page_index
    transition.perform(action)
    if navigator.current_page_index == before:
        output("Fine del libro" if action == TransitionAction.NEXT_PAGE else "Inizio del libro")
        return
    logger.debug(
        "Pagina %d con transizione %s (%.1fs)",
        navigator.current_page_index + 1, transition.name, transition.duration,
    )


def _go_to_chapter(navigator: ReaderNavigator, arg: str, output) -> None:
    try:
        index = int(arg) - 1
    except ValueError:
        output(f"Numero di capitolo non valido: {arg}")
        return
    if not 0 <= index < navigator.chapter_count:
        output(f"Capitolo {arg} non trovato (1-{navigator.chapter_count})")
        return
    navigator.go_to_chapter(index)


def _change_number(navigator: ReaderNavigator, command: str, arg: str, output) -> None:
    field, allowed = {
        "f": ("font_size", value_range(*FONT_SIZE_RANGE)),
        "s": ("line_spacing", value_range(*LINE_SPACING_RANGE)),
    }[command]
    try:
        value = int(arg)
    except ValueError:
        value = None
    if value not in allowed:
        output(f"Valore non valido: {arg} (ammessi {allowed[0]}-{allowed[-1]})")
        return
    navigator.update_settings(**{field: value})


def _change_choice(navigator: ReaderNavigator, command: str, arg: str, output) -> None:
    field, enum_cls = {
        "t": ("background_theme", BackgroundTheme),
        "a": ("text_alignment", TextAlignment),
        "m": ("page_turn_style", PageTurnStyle),
    }[command]
    try:
        value = enum_cls(arg.lower())
    except ValueError:
        choices = ", ".join(v.value for v in enum_cls)
        output(f"Valore non valido: {arg} (ammessi: {choices})")
        return
    navigator.update_settings(**{field: value})


if __name__ == "__main__":
    main()
