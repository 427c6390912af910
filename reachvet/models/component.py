"""Component and vulnerability input types."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# pkg:type/namespace/name@version?qualifiers#subpath
_PURL_RE = re.compile(
    r"^pkg:(?P<type>[A-Za-z][A-Za-z0-9.+-]*)/"
    r"(?P<path>[^@?#]+)"
    r"(?:@(?P<version>[^?#]+))?"
)


@dataclass(frozen=True)
class PackageURL:
    """The parts of a package-url that matter for matching."""

    type: str
    namespace: str | None
    name: str
    version: str | None = None

    @property
    def full_name(self) -> str:
        """Name as the ecosystem registry spells it (``@scope/pkg``, ``group:artifact``)."""
        if not self.namespace:
            return self.name
        if self.type == "npm":
            return f"{self.namespace}/{self.name}"
        if self.type == "maven":
            return f"{self.namespace}:{self.name}"
        return f"{self.namespace}/{self.name}"


def parse_purl(purl: str | None) -> PackageURL | None:
    """Parse a package-url string, returning None when it is unusable."""
    if not purl:
        return None
    m = _PURL_RE.match(purl.strip())
    if not m:
        return None
    segments = [s for s in m.group("path").split("/") if s]
    if not segments:
        return None
    # percent-encoded "@" in npm scopes
    segments = [s.replace("%40", "@") for s in segments]
    name = segments[-1]
    namespace = "/".join(segments[:-1]) or None
    return PackageURL(
        type=m.group("type").lower(),
        namespace=namespace,
        name=name,
        version=m.group("version"),
    )


@dataclass(frozen=True)
class Vulnerability:
    id: str  # CVE-2024-1234, GHSA-xxxx
    affected_functions: tuple[str, ...] = ()
    severity: str | None = None  # critical | high | medium | low | unknown
    fixed_version: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class Component:
    """A declared dependency, as supplied by an SBOM or component list."""

    name: str
    version: str = ""
    ecosystem: str | None = None  # npm | pypi | maven | go | cargo | ...
    purl: str | None = None
    vulnerabilities: tuple[Vulnerability, ...] = field(default_factory=tuple)

    @property
    def package_url(self) -> PackageURL | None:
        return parse_purl(self.purl)

    @property
    def resolved_ecosystem(self) -> str | None:
        """Ecosystem from the explicit field, falling back to the purl type."""
        if self.ecosystem:
            return self.ecosystem.lower()
        purl = self.package_url
        return purl.type if purl else None

    @property
    def affected_functions(self) -> list[str]:
        """Flattened, de-duplicated affected function names in input order."""
        seen: set[str] = set()
        out: list[str] = []
        for vuln in self.vulnerabilities:
            for func in vuln.affected_functions:
                if func and func not in seen:
                    seen.add(func)
                    out.append(func)
        return out
