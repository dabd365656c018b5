"""
BELEX Document Parser Adapter

Parses rendered law pages from www.belex.sites.be.ch.
Extracts the law text header, the outline path of every article and the
paragraphs of each article, annotations included.

BELEX renders the systematic outline as nested collapsible containers, each
preceded by its heading. Article bodies live in the collapsible block that
immediately follows the article node; footnotes and annotations are rendered
as loose siblings after the paragraph they belong to.
"""
import copy
import logging
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from belex_scraper.domain.belex_entities import (
    OUTLINE_LEVELS,
    ExtractedArticle,
    ExtractedDocument,
    ExtractedParagraph,
    LawTextHeader,
    OutlinePath,
)
from .belex_errors import ExtractionMiss

logger = logging.getLogger(__name__)


ARTICLE_CLASS = "type-article"
COLLAPSIBLE_CLASS = "collapseable"
HEADING_CLASS = "heading"
PARAGRAPH_CLASS = "paragraph"
PARAGRAPH_NUMBER_CLASS = "number"

HEADER_FIELDS: Tuple[str, ...] = (
    "systematic_number",
    "title",
    "abbreviation",
    "enactment",
    "ingress_author",
    "ingress_foundation",
    "ingress_action",
)

SELECTORS: Dict[str, str] = {
    **{name: f".{name}" for name in HEADER_FIELDS},
    "article": f".{ARTICLE_CLASS}",
    "article_number": ".article_number",
    "article_title": ".article_title",
    "collapsible": f".{COLLAPSIBLE_CLASS}",
    "heading": f".{HEADING_CLASS}",
    "paragraph": f".{PARAGRAPH_CLASS}",
    "paragraph_number": f".{PARAGRAPH_NUMBER_CLASS}",
}

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Replace line breaks with spaces and collapse runs of whitespace."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text.replace("\r", " ").replace("\n", " ")).strip()


def _has_class(node: object, class_name: str) -> bool:
    if not isinstance(node, Tag):
        return False
    return class_name in (node.get("class") or [])


def _node_text(node: object) -> str:
    if isinstance(node, Comment):
        return ""
    if isinstance(node, NavigableString):
        return normalize_text(str(node))
    if isinstance(node, Tag):
        return normalize_text(node.get_text())
    return ""


def _select_text(root: Tag, selector: str) -> Optional[str]:
    """
    Text of the first element matching selector.

    Returns:
        Stripped text, or None when nothing matches
    """
    node = root.select_one(selector)
    if node is None:
        logger.info(str(ExtractionMiss(selector)))
        return None
    return node.get_text().strip()


def parse_law_text_header(soup: Tag, source_url: Optional[str] = None) -> LawTextHeader:
    """
    Extract the flat header fields of a law page.

    Missing fields are None; a miss never aborts the rest of the page.
    """
    values = {name: _select_text(soup, SELECTORS[name]) for name in HEADER_FIELDS}
    return LawTextHeader(source_url=source_url, **values)


def extract_outline(article_node: Tag) -> OutlinePath:
    """
    Rebuild the outline path of an article.

    Walks the collapsible ancestors of the article from the innermost
    outward. A container whose preceding sibling element is a heading
    contributes that heading's text. The collected titles fill the outline
    from book_name down, outermost first.

    Args:
        article_node: The .type-article element

    Returns:
        OutlinePath with unknown levels left empty
    """
    titles: List[str] = []
    for ancestor in article_node.parents:
        if not _has_class(ancestor, COLLAPSIBLE_CLASS):
            continue
        previous = ancestor.find_previous_sibling()
        if previous is None or not _has_class(previous, HEADING_CLASS):
            continue
        title = _node_text(previous)
        if title:
            titles.append(title)

    titles.reverse()
    if len(titles) > len(OUTLINE_LEVELS):
        logger.debug(
            f"Outline deeper than {len(OUTLINE_LEVELS)} levels, "
            f"dropping: {titles[len(OUTLINE_LEVELS):]}"
        )
        titles = titles[:len(OUTLINE_LEVELS)]

    return OutlinePath.from_titles(tuple(titles))


def _paragraph_own_text(paragraph: Tag) -> str:
    """Paragraph text without its number element."""
    own = copy.copy(paragraph)
    for number in own.select(SELECTORS["paragraph_number"]):
        number.decompose()
    return _node_text(own)


def merge_paragraphs(block: Tag) -> Tuple[ExtractedParagraph, ...]:
    """
    Collect the paragraphs of an article body.

    Every sibling after a paragraph, up to the next paragraph, is treated as
    an annotation of that paragraph and appended to its text.

    Args:
        block: Collapsible element following the article node

    Returns:
        Paragraphs in page order
    """
    paragraphs = []
    for node in block.select(SELECTORS["paragraph"]):
        number_node = node.select_one(SELECTORS["paragraph_number"])
        number = _node_text(number_node) if number_node is not None else ""

        parts = [_paragraph_own_text(node)]
        for sibling in node.next_siblings:
            if _has_class(sibling, PARAGRAPH_CLASS):
                break
            text = _node_text(sibling)
            if text:
                parts.append(text)

        paragraphs.append(
            ExtractedParagraph(
                number=number,
                text=" ".join(part for part in parts if part),
            )
        )
    return tuple(paragraphs)


def parse_article(article_node: Tag) -> ExtractedArticle:
    """Extract number, title, outline and paragraphs of one article."""
    number_node = article_node.select_one(SELECTORS["article_number"])
    title_node = article_node.select_one(SELECTORS["article_title"])

    block = article_node.find_next_sibling()
    if block is not None and _has_class(block, COLLAPSIBLE_CLASS):
        paragraphs = merge_paragraphs(block)
    else:
        paragraphs = ()

    return ExtractedArticle(
        number=_node_text(number_node) if number_node is not None else "",
        title=_node_text(title_node) if title_node is not None else "",
        outline=extract_outline(article_node),
        paragraphs=paragraphs,
    )


def parse_law_text_document(html: str, source_url: Optional[str] = None) -> ExtractedDocument:
    """
    Parse a rendered BELEX law page.

    Args:
        html: Rendered HTML from the browser adapter
        source_url: URL the page was loaded from

    Returns:
        ExtractedDocument with header and articles in page order
    """
    if not html or not html.strip():
        logger.warning(f"Empty page received from {source_url}")
        return ExtractedDocument(header=LawTextHeader(source_url=source_url))

    soup = BeautifulSoup(html, 'lxml')
    header = parse_law_text_header(soup, source_url)

    articles = []
    for article_node in soup.select(SELECTORS["article"]):
        try:
            articles.append(parse_article(article_node))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(
                f"Skipping malformed article in {header.systematic_number}: {e}"
            )

    logger.info(
        f"Parsed {header.systematic_number}: {len(articles)} articles"
    )
    return ExtractedDocument(header=header, articles=tuple(articles))
