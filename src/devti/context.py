"""Class context collected by the IDE front ends.

The language front ends (Kotlin, Scala, Java) walk their syntax trees and
fill a :class:`ClassContext`; the chat client only needs its text form.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ClassContext:
    """Summary of one class: its members and where it is used."""

    name: str
    functions: list[str] = field(default_factory=list)  # signatures, no bodies
    fields: list[str] = field(default_factory=list)
    usages: list[str] = field(default_factory=list)
    display_name: str = ""  # fully qualified name when known
    annotations: list[str] = field(default_factory=list)
    text: str = ""  # raw source of the class
    package: str = ""

    def format(self) -> str:
        """Render the class as a compact, body-less outline."""
        lines: list[str] = []
        if self.package:
            lines.append(f"'package: {self.package}")
        lines.extend(self.annotations)
        lines.append(f"class {self.display_name or self.name} {{")
        for f in self.fields:
            lines.append(f"  {f}")
        for fn in self.functions:
            lines.append(f"  {fn}")
        lines.append("}")
        if self.usages:
            lines.append("")
            lines.append(f"'usages of {self.name}:")
            lines.extend(f"'  {u}" for u in self.usages)
        return "\n".join(lines)


def build_prompt(instruction: str, context: ClassContext | None = None) -> str:
    """Prepend the formatted *context* (if any) to *instruction*."""
    if context is None:
        return instruction
    return f"```\n{context.format()}\n```\n\n{instruction}"
