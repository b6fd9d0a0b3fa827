#!/usr/bin/env python3
"""
Read and update Android strings.xml documents.

Only the two operations the exporter needs are exposed: reading every
``<string>`` entry of a file and upserting a single entry. Updates happen
inside :meth:`AndroidStringsDocument.edit`, which holds a per-file lock and
replaces the file atomically so no reader ever sees a half-written document.
"""

import html
import logging
import os
import re
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from lxml import etree

from errors import DocumentWriteError

logger = logging.getLogger(__name__)

STRINGS_FILE_NAME = "strings.xml"
RESOURCES_TAG = "resources"
STRING_TAG = "string"

_XML_DECLARATION = b'<?xml version="1.0" encoding="utf-8"?>'
_DEFAULT_INDENT = "    "

_INLINE_TAG_SPLIT = re.compile(r"(</?[A-Za-z_][^<>]*>)")
_BARE_AMPERSAND = re.compile(r"&(?!#?\w+;)")

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


class StringEntry(NamedTuple):
    name: str
    value: str
    translatable: bool = True


def _create_document_parser() -> etree.XMLParser:
    """Return an XML parser that keeps whitespace and never resolves external entities."""
    return etree.XMLParser(
        remove_blank_text=False,
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
    )


def _create_secure_fragment_parser() -> etree.XMLParser:
    """Return an XML parser configured to avoid external entity resolution."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        dtd_validation=False,
        load_dtd=False,
        recover=False,
    )


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


def element_text(element) -> str:
    """
    Return the human readable content of a ``<string>`` element.

    Character and entity references are resolved, nested markup such as
    ``<b>`` or ``<xliff:g>`` is kept as text.
    """
    if len(element) == 0:
        return element.text or ""

    # Serialize the whole element so namespace declarations stay on the outer tag
    markup = etree.tostring(element, encoding="unicode", with_tail=False)
    inner = markup[markup.index(">") + 1 : markup.rindex("</")]
    return html.unescape(inner)


def _markup_fragment(value: str) -> str:
    """
    Turn a value read by :func:`element_text` back into an XML fragment.

    Text between tags is escaped again; tags keep their markup with only
    bare ampersands in attribute values escaped.
    """
    parts = []
    for segment in _INLINE_TAG_SPLIT.split(value):
        if not segment:
            continue
        if _INLINE_TAG_SPLIT.fullmatch(segment):
            parts.append(_BARE_AMPERSAND.sub("&amp;", segment))
        else:
            parts.append(html.escape(segment, quote=False))
    return "".join(parts)


def set_element_text(element, value: str) -> None:
    """Replace an element's content, keeping well-formed inline markup as markup."""
    for child in list(element):
        element.remove(child)

    if "<" not in value:
        element.text = value
        return

    nsmap = element.nsmap or {}
    declarations = "".join(
        f' xmlns:{prefix}="{uri}"' for prefix, uri in nsmap.items() if prefix
    )
    try:
        wrapper = etree.fromstring(
            f"<__wrapper__{declarations}>{_markup_fragment(value)}</__wrapper__>",
            parser=_create_secure_fragment_parser(),
        )
    except etree.XMLSyntaxError:
        element.text = value
        return

    element.text = wrapper.text
    for child in list(wrapper):
        element.append(child)


def _detect_indent(root) -> str:
    """Detect the indentation used for children of the root element."""
    whitespace = root.text if len(root) > 0 else None
    for candidate in [whitespace] + [child.tail for child in root]:
        match = re.match(r"\n([ \t]+)", candidate or "")
        if match:
            return match.group(1)
    return _DEFAULT_INDENT


class AndroidStringsDocument:
    """
    A strings.xml file of one Android ``values`` directory.
    """

    def __init__(self, path: Path) -> None:
        self.path: Path = Path(path)

    def __repr__(self) -> str:
        return f"AndroidStringsDocument({str(self.path)!r})"

    def _load(self) -> Tuple[etree._ElementTree, bool]:
        data = self.path.read_bytes()
        root = etree.fromstring(data, _create_document_parser())
        return root.getroottree(), data.endswith(b"\n")

    def read_entries(self) -> List[StringEntry]:
        """
        Parse every ``<string>`` element of the document.

        Elements without a ``name`` attribute are skipped. Raises
        ``etree.XMLSyntaxError`` or ``OSError`` if the file cannot be read.
        """
        tree, _ = self._load()
        root = tree.getroot()
        if root.tag != RESOURCES_TAG:
            logger.warning(
                f"Skipping {self.path}: root element is <{root.tag}>, expected <{RESOURCES_TAG}>"
            )
            return []

        entries: List[StringEntry] = []
        for elem in root.iterchildren(STRING_TAG):
            name = elem.get("name")
            if not name:
                logger.debug(f"Skipping <string> without a name in {self.path}")
                continue
            translatable = elem.get("translatable", "true").lower() != "false"
            entries.append(StringEntry(name, element_text(elem), translatable))

        logger.debug(f"Parsed {len(entries)} strings from {self.path}")
        return entries

    @contextmanager
    def edit(self) -> Iterator[etree._Element]:
        """
        Hold exclusive access to the document while the caller mutates its root.

        The tree is parsed on entry and written back on a clean exit through a
        temporary file that replaces the original. If the body raises, the file
        is left untouched.
        """
        with _lock_for(self.path):
            try:
                tree, trailing_newline = self._load()
            except (OSError, etree.XMLSyntaxError) as e:
                raise DocumentWriteError(f"Cannot open {self.path} for update: {e}") from e

            root = tree.getroot()
            if root.tag != RESOURCES_TAG:
                raise DocumentWriteError(
                    f"Cannot update {self.path}: root element is <{root.tag}>, expected <{RESOURCES_TAG}>"
                )

            yield root
            self._write(tree, trailing_newline)

    def _write(self, tree, trailing_newline: bool) -> None:
        xml_bytes = etree.tostring(tree, encoding="utf-8", xml_declaration=True)
        xml_bytes = re.sub(
            rb"<\?xml version=['\"]1\.0['\"] encoding=['\"]utf-8['\"]\?>",
            _XML_DECLARATION,
            xml_bytes,
            count=1,
            flags=re.IGNORECASE,
        )
        xml_bytes = xml_bytes.rstrip(b"\n")
        if trailing_newline:
            xml_bytes += b"\n"

        tmp_path: Optional[str] = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "wb") as f:
                f.write(xml_bytes)
                f.flush()
                os.fsync(f.fileno())
            shutil.copymode(str(self.path), tmp_path)
            os.replace(tmp_path, str(self.path))
            tmp_path = None
        except OSError as e:
            raise DocumentWriteError(f"Error writing XML file {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

        logger.debug(f"Wrote {self.path}")

    def upsert(self, key: str, value: str) -> bool:
        """
        Set the value of ``<string name=key>``, appending the element if absent.

        Sibling elements, comments and whitespace are left as they are. A new
        element is placed after the last child with the document's indentation.

        Returns:
            True if an existing element was updated, False if one was added
        """
        with self.edit() as root:
            existing = None
            for elem in root.iterchildren(STRING_TAG):
                if elem.get("name") == key:
                    existing = elem
                    break

            if existing is not None:
                set_element_text(existing, value)
                logger.debug(f"Updated <string name='{key}'> element in {self.path}")
                return True

            indent = _detect_indent(root)
            new_elem = etree.Element(STRING_TAG, name=key)

            if len(root) > 0:
                last = root[-1]
                new_elem.tail = last.tail if last.tail is not None else "\n"
                last.tail = "\n" + indent
            else:
                root.text = "\n" + indent
                new_elem.tail = "\n"
            root.append(new_elem)
            # Set content once attached so namespace prefixes of the root resolve
            set_element_text(new_elem, value)

            logger.debug(f"Appended <string name='{key}'> element to {self.path}")
            return False
