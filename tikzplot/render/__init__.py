from tikzplot.render.markup import (
    DEFAULT_COMPAT,
    format_number,
    render_document,
    render_document_text,
    render_figure,
    render_markup,
)

__all__ = [
    "DEFAULT_COMPAT",
    "format_number",
    "render_document",
    "render_document_text",
    "render_figure",
    "render_markup",
]
