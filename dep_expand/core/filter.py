from __future__ import annotations

from dep_expand.core.selector import Selector
from dep_expand.core.syntax import parse_file, render_file


def filter_source(content: str, selector: Selector) -> str:
    """Restrict expanded source to the items `selector` picks.

    The shebang and file-level `#![...]` attributes are always dropped; they
    only make sense for the complete file.
    """
    syntax_tree = parse_file(content)
    syntax_tree.shebang = None
    syntax_tree.attrs.clear()
    syntax_tree.items = selector.apply_to(syntax_tree.items)
    return render_file(syntax_tree)
