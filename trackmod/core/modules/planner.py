from __future__ import annotations

"""
Entry-point resolution for archive installs.

An explicit DllFileName always wins. Otherwise the staged files are filtered to
the binary extension; one candidate is taken as-is, several are disambiguated by
edit distance against the download's file name.
"""

import posixpath
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from trackmod.core.errors import NoEntryPointFound
from trackmod.core.modules.matcher import best_match_with_distance
from trackmod.core.modules.models import ModuleRecord, strip_extension, url_file_name


@dataclass(frozen=True)
class EntryPointPlan:
    file_name: str
    source: str  # declared|single|matched
    distance: Optional[int] = None
    candidates: Tuple[str, ...] = field(default_factory=tuple)


def binary_candidates(staged_files: Iterable[str], binary_extension: str = ".dll") -> List[str]:
    ext = str(binary_extension).lower()
    return [p for p in staged_files if posixpath.splitext(p)[1].lower() == ext]


def resolve_entry_point(
    declared_name: Optional[str],
    staged_files: Iterable[str],
    download_url: str,
    *,
    binary_extension: str = ".dll",
) -> EntryPointPlan:
    if declared_name:
        return EntryPointPlan(file_name=str(declared_name), source="declared")

    staged = [str(p).replace("\\", "/") for p in staged_files]
    candidates = binary_candidates(staged, binary_extension)
    if not candidates:
        raise NoEntryPointFound(
            "The module did not name its file and the archive contains none.",
            extension=binary_extension,
            staged_count=len(staged),
        )

    if len(candidates) == 1:
        return EntryPointPlan(file_name=candidates[0], source="single", candidates=tuple(candidates))

    target = strip_extension(url_file_name(download_url))
    stems = [strip_extension(c) for c in candidates]
    hit = best_match_with_distance(target, stems)
    if hit is None:
        raise NoEntryPointFound(extension=binary_extension, staged_count=len(staged))
    stem, distance = hit

    # Map the winning stem back to the staged path it came from; first wins on duplicates.
    chosen = candidates[stems.index(stem)]
    if chosen not in staged:
        raise NoEntryPointFound("Resolved module file is not among the extracted files.", resolved=chosen)
    return EntryPointPlan(file_name=chosen, source="matched", distance=distance, candidates=tuple(candidates))


def apply_plan(record: ModuleRecord, plan: EntryPointPlan) -> ModuleRecord:
    if record.dll_file_name == plan.file_name:
        return record
    return record.with_entry_point(plan.file_name)
