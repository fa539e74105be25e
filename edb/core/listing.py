"""
Parsing of eXist REST collection listings
"""
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field


def _local(tag: str) -> str:
    """Tag name without its '{namespace}' prefix."""
    return tag.rsplit("}", 1)[-1]


@dataclass
class Listing:
    """Child names of one collection, already disambiguated."""
    path: str
    containers: list = field(default_factory=list)
    resources: list = field(default_factory=list)

    def __post_init__(self):
        self.containers = _unique(self.containers)
        names = set(self.containers)
        # A name listed as both is a collection; drop the resource twin.
        self.resources = [r for r in _unique(self.resources) if r not in names]

    def __len__(self):
        return len(self.containers) + len(self.resources)


def _unique(names) -> list:
    seen = set()
    out = []
    for n in names:
        if n and n not in seen:
            seen.add(n)
            out.append(n)
    return out


def parse_listing(path: str, body) -> Listing:
    """
    Parse the XML returned by a GET on a collection:

      <exist:result>
        <exist:collection name="/db/apps/x" ...>
          <exist:collection name="modules"/>
          <exist:resource name="controller.xql"/>
        </exist:collection>
      </exist:result>

    Only direct children of the listed collection are considered.
    Raises ValueError if *body* is not a collection listing.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise ValueError(f"listing for {path} is not XML: {exc}") from None

    if _local(root.tag) == "collection":
        coll = root
    else:
        coll = next((c for c in root if _local(c.tag) == "collection"), None)
        if coll is None:
            raise ValueError(f"no collection element in listing for {path}")

    containers, resources = [], []
    for child in coll:
        kind = _local(child.tag)
        name = child.get("name", "")
        if kind == "collection":
            containers.append(name)
        elif kind == "resource":
            resources.append(name)
    return Listing(path, containers, resources)
