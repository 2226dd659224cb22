"""Reading progress bar rendering."""

from tqdm import tqdm

BAR_FORMAT = "{desc}|{bar}| {n_fmt}/{total_fmt}"


def format_reading_progress(
    current_index: int,
    total_pages: int,
    chapter_title: str = "",
    width: int = 80,
) -> str:
    """Render a one-line progress bar for the page at ``current_index``.

    Pages are shown 1-based, like the reader's page indicator.
    """
    if total_pages <= 0:
        return f"{chapter_title} 0/0".strip()
    return tqdm.format_meter(
        n=min(current_index + 1, total_pages),
        total=total_pages,
        elapsed=0,
        ncols=width,
        prefix=f"{chapter_title} " if chapter_title else "",
        bar_format=BAR_FORMAT,
    )
