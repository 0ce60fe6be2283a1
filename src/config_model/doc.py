"""
Docstring checks for declared nodes.

Rendering documentation is left to external tools; this module only makes
sure ``oneliner`` and ``doc`` metaparameters are usable by them.
"""

from __future__ import annotations

from config_model.model import MNode
from config_model.validation.result import CheckResult

UNDOCUMENTED = "undocumented"


def check_docstrings(mnode: MNode) -> CheckResult:
    results = []
    if "oneliner" not in mnode:
        if not mnode.has_metatype(UNDOCUMENTED):
            results.append(CheckResult.warning("Missing `oneliner'"))
    else:
        oneliner = mnode.get("oneliner")
        if not isinstance(oneliner, str) or "\n" in oneliner:
            results.append(CheckResult.error("`oneliner' should be a single-line string"))
    if "doc" in mnode and not isinstance(mnode.get("doc"), str):
        results.append(CheckResult.error("`doc' should be a string"))
    return CheckResult.compose(results)
