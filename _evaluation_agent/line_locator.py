"""
Line Locator — REST Lens Evaluation Action

PURPOSE:
    REST Lens reports WHERE a violation applies as a pointer into the
    document structure (e.g. "/paths/~1pets/get/responses"), not as a line
    number. GitHub annotations and inline PR comments need a line. This
    module walks the pointer through the uploaded text and returns the
    1-based line where the pointed-at key (or list item) starts.

CALLED BY:
    violation_model.flatten_violations_with_lines() — once per spec file,
    always with the exact content that was uploaded.

DEPENDS ON:
    - PyYAML's composer. compose() builds the node graph with source marks
      but never constructs Python objects, so untrusted documents are safe.
      JSON is (almost) a subset of YAML, so one parser covers both formats.

DESIGN DECISIONS:
    - If only a prefix of the pointer resolves, we return the line of the
      deepest node that did resolve. A violation on a missing key (e.g.
      "description is required") is best shown on its parent object.
    - If nothing resolves, or the document does not parse, the answer is
      line 1. Downstream consumers always expect a line.
    - YAML forbids tabs as indentation but plenty of JSON files use them.
      If the first parse fails we retry with tabs replaced by spaces; that
      keeps every line number intact.
"""

import logging
from typing import Optional, Union

import yaml

logger = logging.getLogger(__name__)

FALLBACK_LINE = 1

Pointer = Union[str, list, tuple, None]


class LineLocator:
    """Resolves document pointers to line numbers for one document."""

    def __init__(self, content: str):
        self._root = _compose_document(content)

    @property
    def parsed(self) -> bool:
        return self._root is not None

    def line_for(self, pointer: Pointer) -> int:
        segments = split_pointer(pointer)
        if self._root is None or not segments:
            return FALLBACK_LINE

        node = self._root
        line = FALLBACK_LINE
        for segment in segments:
            found = _child(node, segment)
            if found is None:
                break
            line, node = found
        return max(line, FALLBACK_LINE)


def split_pointer(pointer: Pointer) -> list:
    """
    Turn a pointer into a list of string segments.

    Accepts a JSON Pointer ("/a/b~1c/0"), a URI fragment pointer
    ("#/a/b"), or an already-split list of segments. Anything else yields
    no segments.
    """
    if pointer is None:
        return []
    if isinstance(pointer, (list, tuple)):
        return [str(segment) for segment in pointer]
    if not isinstance(pointer, str):
        return []

    text = pointer.strip()
    if text.startswith("#"):
        text = text[1:]
    if not text.startswith("/"):
        return []
    return [
        segment.replace("~1", "/").replace("~0", "~")
        for segment in text[1:].split("/")
    ]


# ---------------------------------------------------------------------------
# PRIVATE HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def _compose_document(content: str) -> Optional[yaml.Node]:
    last_error = None
    for candidate in (content, content.replace("\t", "  ")):
        try:
            return yaml.compose(candidate, Loader=yaml.SafeLoader)
        except yaml.YAMLError as e:
            last_error = e
    logger.debug(f"Could not parse document for line resolution: {last_error}")
    return None


def _child(node: yaml.Node, segment: str):
    """Return (line, child_node) for one pointer step, or None."""
    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            if isinstance(key_node, yaml.ScalarNode) and key_node.value == segment:
                return key_node.start_mark.line + 1, value_node
        return None

    if isinstance(node, yaml.SequenceNode):
        if not segment.isdigit():
            return None
        index = int(segment)
        if index >= len(node.value):
            return None
        item = node.value[index]
        return item.start_mark.line + 1, item

    return None
