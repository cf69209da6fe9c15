"""
Derived document generation via XSLT.

The primary document of an item (MODS) is turned into the derived
document (Dublin Core by default) by applying a named stylesheet.
Stylesheets are compiled once per transformer and shared by every item.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from lxml import etree

from repo_forge.ingest.exceptions import TransformError

logger = logging.getLogger(__name__)


MODS_NS = "http://www.loc.gov/mods/v3"

TRANSFORMS_DIR = Path(__file__).resolve().parent.parent / "transforms"

DEFAULT_TRANSFORM = "mods_to_dc"

# First titleInfo/title in document order, with or without the MODS namespace
TITLE_XPATH = "(//*[local-name()='titleInfo']/*[local-name()='title'])[1]"


def xml_parser(remove_blank_text: bool = True) -> etree.XMLParser:
    """New parser that never fetches external entities or DTDs."""
    return etree.XMLParser(resolve_entities=False, no_network=True,
                           remove_blank_text=remove_blank_text)


def parse_xml(document: Union[str, bytes]) -> etree._Element:
    """
    Parse an XML document held in memory.

    Raises:
        etree.XMLSyntaxError: If the document is not well-formed
    """
    if isinstance(document, str):
        document = document.encode("utf-8")
    return etree.fromstring(document, parser=xml_parser())


def resolve_transform(definition_ref: Union[str, Path]) -> Path:
    """
    Locate a transform definition.

    Args:
        definition_ref: Path to a stylesheet, or the name of a bundled one
            (e.g. ``"mods_to_dc"``)

    Returns:
        Path to the stylesheet file

    Raises:
        TransformError: If no stylesheet matches the reference
    """
    candidate = Path(definition_ref)
    if candidate.is_file():
        return candidate

    bundled = TRANSFORMS_DIR / f"{definition_ref}.xsl"
    if bundled.is_file():
        return bundled

    raise TransformError(f"Transform definition not found: {definition_ref}")


class Transformer(ABC):
    """Applies a transform definition to an XML document."""

    @abstractmethod
    def transform(self, definition_ref: str, document: str) -> Optional[str]:
        """Transform ``document``.

        Returns:
            The output document, or None when the input cannot be transformed
        """
        pass


class XsltTransformer(Transformer):
    """Transformer backed by lxml's XSLT processor."""

    def __init__(self):
        self._stylesheets: Dict[str, etree.XSLT] = {}
        self._lock = threading.RLock()

    def load(self, definition_ref: str) -> etree.XSLT:
        """
        Compile (once) and return the stylesheet for ``definition_ref``.

        Raises:
            TransformError: If the stylesheet is missing or invalid
        """
        key = str(definition_ref)
        with self._lock:
            if key not in self._stylesheets:
                path = resolve_transform(definition_ref)
                try:
                    self._stylesheets[key] = etree.XSLT(
                        etree.parse(str(path), parser=xml_parser(remove_blank_text=False))
                    )
                except (OSError, etree.XMLSyntaxError, etree.XSLTParseError) as e:
                    raise TransformError(f"Invalid transform definition {path}: {e}")
                logger.debug(f"Compiled transform {key} from {path}")
            return self._stylesheets[key]

    def transform(self, definition_ref: str, document: str) -> Optional[str]:
        if not document:
            return None

        stylesheet = self.load(definition_ref)

        try:
            source = parse_xml(document)
        except etree.XMLSyntaxError as e:
            logger.warning(f"Cannot apply {definition_ref}: input is not well-formed ({e})")
            return None

        with self._lock:
            try:
                result = stylesheet(source)
            except etree.XSLTApplyError as e:
                logger.warning(f"Transform {definition_ref} failed: {e}")
                return None

        if result.getroot() is None:
            logger.warning(f"Transform {definition_ref} produced an empty document")
            return None

        return etree.tostring(result, encoding="unicode", pretty_print=True)


class DerivedDocumentGenerator:
    """
    Computes the title and derived document for a primary document.

    Items call into a shared generator and memoize the results themselves,
    so one generator (and one compiled stylesheet) serves a whole batch.
    """

    def __init__(self, transformer: Optional[Transformer] = None,
                 definition: str = DEFAULT_TRANSFORM):
        """
        Args:
            transformer: Transform collaborator (XSLT by default)
            definition: Transform definition reference applied by derive()
        """
        self.transformer = transformer or XsltTransformer()
        self.definition = definition

    def title(self, primary: Optional[str]) -> str:
        """
        First title element of the primary document.

        Returns:
            Whitespace-normalised title, or "" when the document is absent,
            unparsable, or has no title
        """
        if not primary:
            return ""

        try:
            root = parse_xml(primary)
        except etree.XMLSyntaxError as e:
            logger.warning(f"Cannot read title: primary document is not well-formed ({e})")
            return ""

        matches = root.xpath(TITLE_XPATH)
        if not matches:
            return ""
        return " ".join("".join(matches[0].itertext()).split())

    def derive(self, primary: Optional[str]) -> Optional[str]:
        """Apply the transform definition; None when there is no primary document."""
        if not primary:
            return None
        return self.transformer.transform(self.definition, primary)


_default_generator: Optional[DerivedDocumentGenerator] = None
_default_lock = threading.Lock()


def get_default_generator() -> DerivedDocumentGenerator:
    """Shared generator using the bundled MODS to DC stylesheet."""
    global _default_generator
    with _default_lock:
        if _default_generator is None:
            _default_generator = DerivedDocumentGenerator()
        return _default_generator
