"""Genome build detection from the contig table of an alignment header."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

# Contig lengths that tell the human builds apart. Keys are names without
# the "chr" prefix.
GENOME_BUILDS: dict[str, dict] = {
    "GRCh38": {
        "aliases": ["hg38", "grch38", "grch38.p13", "grch38.p14"],
        "lengths": {"1": 248_956_422, "2": 242_193_529, "X": 156_040_895},
        "description": "Human genome build 38 (Dec 2013)",
    },
    "GRCh37": {
        "aliases": ["hg19", "grch37", "b37", "hs37d5"],
        "lengths": {"1": 249_250_621, "2": 243_199_373, "X": 155_270_560},
        "description": "Human genome build 37 (Feb 2009)",
    },
}
SIGNATURE_CONTIGS = ("1", "2", "X")


@dataclass
class BuildGuess:
    """Outcome of genome build detection."""

    build: str = "unknown"
    confidence: str = "low"  # "high", "medium" or "low"
    naming: str = "unknown"  # "ucsc" (chr1) or "ensembl" (1)
    evidence: list[str] = field(default_factory=list)


def normalize_build_name(name: str) -> str | None:
    """
    Canonical build name for an alias.

    Examples:
        >>> normalize_build_name("hg19")
        'GRCh37'
        >>> normalize_build_name("mm10") is None
        True
    """
    lowered = name.lower()
    for canonical, info in GENOME_BUILDS.items():
        if lowered == canonical.lower() or lowered in info["aliases"]:
            return canonical
    return None


def _strip_chr(name: str) -> str:
    return name[3:] if name.lower().startswith("chr") else name


def detect_genome_build(targets: Mapping[str, int]) -> BuildGuess:
    """
    Guess the reference build from contig names and lengths.

    Each signature contig (1, 2, X) whose length matches a build votes for
    it. All present signature contigs agreeing gives high confidence; a
    single match with disagreement or missing contigs gives medium.

    Args:
        targets: Contig name -> length, as from the alignment header.
    """
    guess = BuildGuess()
    if not targets:
        guess.evidence.append("No contigs in header")
        return guess

    with_prefix = sum(1 for name in targets if name.lower().startswith("chr"))
    guess.naming = "ucsc" if with_prefix > len(targets) / 2 else "ensembl"
    guess.evidence.append(f"{with_prefix} of {len(targets)} contigs use the 'chr' prefix")

    lengths = {_strip_chr(name): length for name, length in targets.items()}

    checked = sum(1 for contig in SIGNATURE_CONTIGS if contig in lengths)
    votes: dict[str, int] = {}
    for build, info in GENOME_BUILDS.items():
        for contig, expected in info["lengths"].items():
            if lengths.get(contig) == expected:
                votes[build] = votes.get(build, 0) + 1
                guess.evidence.append(f"{contig} length ({expected:,}) matches {build}")

    if not checked:
        guess.evidence.append("None of the signature contigs (1, 2, X) are present")
        return guess

    if not votes:
        guess.confidence = "medium"
        guess.evidence.append("Signature contig lengths match no known human build")
        return guess

    best = max(votes, key=votes.__getitem__)
    guess.build = best
    guess.confidence = "high" if votes[best] == checked and len(votes) == 1 else "medium"
    return guess
