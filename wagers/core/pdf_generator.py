"""Printable results sheet for a resolved stage.

Layout follows the championship sheets:
- Small-caps pool title and season line
- Red filled oval with the stage title
- Red divider with letter-spaced text before each section
- Section lines in a single left-aligned column, paginated
"""

import fitz  # PyMuPDF

from .output_generator import report_sections

# --- Page layout constants (letter: 612 x 792 pt) ---
PAGE_W = 612
PAGE_H = 792

LEFT_X = 48
TITLE_LINE1_Y = 35
TITLE_LINE2_Y = 60
OVAL_CENTER_Y = 88
BODY_START_Y = 125
BODY_BOTTOM_Y = PAGE_H - 36
FOOTER_Y = PAGE_H - 14

RED = (1, 0, 0)
WHITE = (1, 1, 1)
BLACK = (0, 0, 0)

TITLE1_LARGE = 18
TITLE1_SMALL = 14
TITLE2_LARGE = 13
TITLE2_SMALL = 10
OVAL_LABEL_SIZE = 12
DIVIDER_SIZE = 10
LINE_SIZE = 9
FOOTER_SIZE = 7

LINE_HEIGHT_RATIO = 1.4
SECTION_GAP = 10

FONT_REGULAR = 'Times-Roman'
FONT_BOLD = 'Times-Bold'


def generate_results_pdf(doc, pool, stage: str, output_path: str):
    """Render a stage's results to a letter-size PDF.

    Args:
        doc: The PoolDocument.
        pool: Its PoolConfig.
        stage: Name of a resolved stage.
        output_path: Where to save the PDF.
    """
    sections = report_sections(doc, pool, stage)
    cfg = pool.stage(stage)
    state = doc.stages[stage]
    line_height = LINE_SIZE * LINE_HEIGHT_RATIO

    pdf = fitz.open()
    page = _new_page(pdf, pool.title, doc.season, cfg.title or cfg.name,
                     state.target_week)
    y = BODY_START_Y

    for heading, lines in sections:
        needed = SECTION_GAP + DIVIDER_SIZE * 1.5 + line_height
        if y + needed > BODY_BOTTOM_Y:
            page = _new_page(pdf, pool.title, doc.season, cfg.title or cfg.name,
                             state.target_week)
            y = BODY_START_Y
        y += SECTION_GAP
        _draw_divider(page, y, heading.upper())
        y += DIVIDER_SIZE * 1.5

        for line in lines:
            if y + line_height > BODY_BOTTOM_Y:
                page = _new_page(pdf, pool.title, doc.season,
                                 cfg.title or cfg.name, state.target_week)
                y = BODY_START_Y
            _draw_line_text(page, y, _fit(line, PAGE_W - 2 * LEFT_X))
            y += line_height

    pdf.save(output_path)
    pdf.close()


# --- Drawing functions ---

def _new_page(pdf, title, season, stage_title, week):
    page = pdf.new_page(width=PAGE_W, height=PAGE_H)
    _draw_small_caps(page, PAGE_W / 2, TITLE_LINE1_Y, f'{season} {title}',
                     TITLE1_LARGE, TITLE1_SMALL)
    _draw_small_caps(page, PAGE_W / 2, TITLE_LINE2_Y, f'Week {week} Results',
                     TITLE2_LARGE, TITLE2_SMALL)
    _draw_oval(page, stage_title.upper(), OVAL_CENTER_Y)
    _draw_footer(page, pdf.page_count)
    return page


def _draw_small_caps(page, center_x, y, text, large_size, small_size):
    """Draw text in small caps, centered horizontally.

    First letter of each word at large_size, rest at small_size.
    """
    total = 0
    pieces = []
    for wi, word in enumerate(text.split()):
        if wi > 0:
            pieces.append((' ', large_size))
        for ci, ch in enumerate(word):
            pieces.append((ch.upper(), large_size if ci == 0 else small_size))
    for ch, fs in pieces:
        total += fitz.get_text_length(ch, fontname=FONT_BOLD, fontsize=fs)

    x = center_x - total / 2
    for ch, fs in pieces:
        if ch != ' ':
            page.insert_text(fitz.Point(x, y), ch,
                             fontname=FONT_BOLD, fontsize=fs, color=BLACK)
        x += fitz.get_text_length(ch, fontname=FONT_BOLD, fontsize=fs)


def _draw_oval(page, label, y_center):
    """Draw a red filled oval with white text label."""
    tw = fitz.get_text_length(label, fontname=FONT_BOLD, fontsize=OVAL_LABEL_SIZE)
    oval_w = tw + 40
    oval_h = 22

    rect = fitz.Rect(PAGE_W / 2 - oval_w / 2, y_center - oval_h / 2,
                     PAGE_W / 2 + oval_w / 2, y_center + oval_h / 2)
    page.draw_oval(rect, color=RED, fill=RED)

    text_y = y_center + OVAL_LABEL_SIZE * 0.35
    page.insert_text(fitz.Point(PAGE_W / 2 - tw / 2, text_y), label,
                     fontname=FONT_BOLD, fontsize=OVAL_LABEL_SIZE, color=WHITE)


def _draw_divider(page, y, text):
    """Draw red lines flanking letter-spaced section text."""
    spaced = _space_text(text)
    tw = fitz.get_text_length(spaced, fontname=FONT_BOLD, fontsize=DIVIDER_SIZE)

    text_x = PAGE_W / 2 - tw / 2
    page.insert_text(fitz.Point(text_x, y), spaced,
                     fontname=FONT_BOLD, fontsize=DIVIDER_SIZE, color=RED)

    line_y = y - DIVIDER_SIZE * 0.35
    gap = 8
    page.draw_line(fitz.Point(LEFT_X - 8, line_y), fitz.Point(text_x - gap, line_y),
                   color=RED, width=0.75)
    page.draw_line(fitz.Point(text_x + tw + gap, line_y),
                   fitz.Point(PAGE_W - LEFT_X + 8, line_y),
                   color=RED, width=0.75)


def _space_text(text):
    """Add letter spacing: 'POT: WAGER' -> 'P O T :  W A G E R'."""
    return '  '.join(' '.join(list(word)) for word in text.split())


def _fit(text, width):
    """Truncate a line with an ellipsis so it fits the column."""
    if fitz.get_text_length(text, fontname=FONT_REGULAR, fontsize=LINE_SIZE) <= width:
        return text
    while text and fitz.get_text_length(text + '...', fontname=FONT_REGULAR,
                                        fontsize=LINE_SIZE) > width:
        text = text[:-1]
    return text + '...'


def _draw_line_text(page, y, text):
    page.insert_text(fitz.Point(LEFT_X, y), text,
                     fontname=FONT_REGULAR, fontsize=LINE_SIZE, color=BLACK)


def _draw_footer(page, page_no):
    text = f'Page {page_no}'
    tw = fitz.get_text_length(text, fontname=FONT_REGULAR, fontsize=FOOTER_SIZE)
    page.insert_text(fitz.Point(PAGE_W / 2 - tw / 2, FOOTER_Y), text,
                     fontname=FONT_REGULAR, fontsize=FOOTER_SIZE, color=BLACK)
