from __future__ import annotations

import re

"""SUMMARY line format printed once per sync request."""

SUMMARY_RE = re.compile(
    r"^SUMMARY rows=\d+ modified=\d+ new=\d+ validated=\d+ "
    r"updated=\d+ inserted=\d+ skipped=\d+ status=(accepted|rejected|fault) elapsed_sec=[0-9.]+$"
)


def test_one_summary_line_per_request(client, app_logger, capsys):
    token = client.get("/rows").get_json()["csrf_token"]
    capsys.readouterr()
    client.post("/rows/sync", json={"csrf_token": token, "row_id": ["1"], "modified_rows": []})
    client.post("/rows/sync", json={
        "csrf_token": token, "field1": [""], "field2": ["1"], "row_id": ["1"], "modified_rows": [0],
    })
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("SUMMARY")]
    assert len(lines) == 2
    assert all(SUMMARY_RE.match(line) for line in lines)
    assert "status=accepted" in lines[0]
    assert "status=rejected" in lines[1]
