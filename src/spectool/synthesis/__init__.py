"""Template synthesis -- place tool arguments into request templates.

Sub-modules:

* :mod:`~spectool.synthesis.templates` -- Per-tool request template
  synthesis from argument placements.
* :mod:`~spectool.synthesis.assembler` -- Packages synthesized tools into a
  :class:`~spectool.models.ToolSpecification` and runs the full pipeline.
"""

from spectool.synthesis.assembler import assemble, build_tool_specification
from spectool.synthesis.templates import synthesize

__all__ = ["synthesize", "assemble", "build_tool_specification"]
