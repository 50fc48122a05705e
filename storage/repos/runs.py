"""RunsMixin — persistence of pricing lookups, one row per request."""
import json
from datetime import datetime


class RunsMixin:
    """Database methods for pricing runs."""

    VALID_STATUSES = ("ok", "not_found", "error")

    def save_run(self, input_domain, pricing_url=None, pricing_info=None,
                 status="ok", error=None, attempts=0, duration_ms=0):
        """Record one pricing lookup.

        Returns: run_id (int)
        """
        if status not in self.VALID_STATUSES:
            raise ValueError(f"Invalid run status: {status}")
        readable_date = datetime.now().strftime("%d/%m/%Y, %H:%M:%S")
        with self._get_conn() as conn:
            cursor = conn.execute(
                """INSERT INTO pricing_runs
                   (input_domain, pricing_url, pricing_info, status, error,
                    attempts, duration_ms, readable_date)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (input_domain, pricing_url,
                 json.dumps(pricing_info) if pricing_info is not None else None,
                 status, error, attempts, duration_ms, readable_date),
            )
            return cursor.lastrowid

    def get_run(self, run_id):
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT * FROM pricing_runs WHERE id = ?", (run_id,)
            ).fetchone()
            return self._run_row(row) if row else None

    def get_runs(self, limit=50, domain=None):
        """Most recent runs first, optionally filtered by input domain."""
        sql = "SELECT * FROM pricing_runs"
        params = []
        if domain:
            sql += " WHERE input_domain = ?"
            params.append(domain)
        sql += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        with self._get_conn() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._run_row(r) for r in rows]

    @staticmethod
    def _run_row(row):
        d = dict(row)
        if d.get("pricing_info"):
            try:
                d["pricing_info"] = json.loads(d["pricing_info"])
            except (json.JSONDecodeError, TypeError):
                pass
        return d
