"""Parsing of upstream documentation tables.

Each category page lists its endpoints in an HTML table whose columns are,
by position: name, return type, description, parameters, (unused), link.
"""

from typing import List, NamedTuple

from bs4 import BeautifulSoup

MIN_CELLS = 6
NO_PARAMETER_TOKENS = {"", "none", "-"}


class EndpointRow(NamedTuple):
    """One table row, text already trimmed."""
    name: str
    return_type: str
    description: str
    parameters: str
    link: str


def _cell_text(cell) -> str:
    return cell.get_text().strip()


def parse_endpoint_rows(html: str) -> List[EndpointRow]:
    """Extract endpoint rows from a documentation page.
    
    Every table row is considered, with or without an explicit <tbody>.
    Rows with fewer than six cells (header rows included), or with an
    empty name or link, are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    rows = []
    
    for tr in soup.select("table tr"):
        cells = tr.find_all("td")
        if len(cells) < MIN_CELLS:
            continue
        
        anchor = cells[5].find("a")
        link = (anchor.get("href") or "").strip() if anchor else ""
        row = EndpointRow(
            name=_cell_text(cells[0]),
            return_type=_cell_text(cells[1]),
            description=_cell_text(cells[2]),
            parameters=_cell_text(cells[3]),
            link=link
        )
        
        if row.name and row.link:
            rows.append(row)
    
    return rows


def parse_parameters(parameters: str) -> List[str]:
    """Split a comma separated parameter string.
    
    >>> parse_parameters("url, quality")
    ['url', 'quality']
    >>> parse_parameters("None")
    []
    """
    names = []
    for part in (parameters or "").split(","):
        name = part.strip()
        if name.lower() in NO_PARAMETER_TOKENS:
            continue
        names.append(name)
    return names


def proxy_path(link: str, prefix: str) -> str:
    """Path under the proxy prefix that reaches ``link``, query string removed."""
    path = link.split("?", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    return prefix + path
