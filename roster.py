import csv
import io

from models import Participant


class RosterError(ValueError):
    pass


def parse_roster(stream) -> list:
    """Read a CSV with a `name` header (and optional `email`) into Participants.

    Cells are trimmed, blank lines skipped and rows without a name dropped.
    `stream` may be a binary upload or a text file.
    """
    raw = stream.read()
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise RosterError(f"roster is not UTF-8: {e}") from e

    reader = csv.DictReader(io.StringIO(raw, newline=""), skipinitialspace=True)
    fields = [(f or "").strip().lower() for f in (reader.fieldnames or [])]
    if "name" not in fields:
        raise RosterError("roster must have a 'name' column")
    reader.fieldnames = fields

    rows = []
    try:
        for row in reader:
            name = (row.get("name") or "").strip()
            if not name:
                continue
            rows.append(Participant(name=name, email=(row.get("email") or "").strip()))
    except csv.Error as e:
        raise RosterError(f"line {reader.line_num}: {e}") from e
    return rows
