import argparse
import asyncio
import json
import os
import sys
from pathlib import Path


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the Prefect teller-pools-sync flow locally")
    p.add_argument(
        "--use-prefect-api",
        action="store_true",
        help="Use PREFECT_API_URL/PREFECT_API_KEY from the environment if set. Default is local/ephemeral execution.",
    )
    p.add_argument(
        "--timestamp",
        type=int,
        default=None,
        help="Unix timestamp for a historical snapshot. Default: latest indexed block.",
    )
    p.add_argument(
        "--network",
        action="append",
        dest="networks",
        help="Restrict to a network (repeatable). Default: all configured networks.",
    )
    p.add_argument(
        "--output",
        default=None,
        help="Write the yield rows as JSON to this path instead of stdout.",
    )
    return p.parse_args()


def _maybe_set_ephemeral_prefect_env(use_prefect_api: bool) -> None:
    if use_prefect_api:
        return
    # Ensure local execution doesn't depend on Prefect server/cloud.
    os.environ.pop("PREFECT_API_URL", None)
    os.environ.pop("PREFECT_API_KEY", None)
    os.environ.setdefault("PREFECT_SERVER_ALLOW_EPHEMERAL_MODE", "true")


async def _run(timestamp: int | None, networks: list[str] | None, output: str | None) -> int:
    from teller_yields.pipelines.flows.teller_pools import teller_pools_flow

    rows = await teller_pools_flow(timestamp=timestamp, networks=networks)
    text = json.dumps(rows, indent=2)
    if output:
        Path(output).write_text(text)
        print(f"Done: wrote {len(rows)} rows to {output}")
    else:
        print(text)
    return 0


def main() -> int:
    args = _parse_args()

    # Ensure `import teller_yields...` works when running from the repo root.
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    _maybe_set_ephemeral_prefect_env(args.use_prefect_api)

    return asyncio.run(_run(args.timestamp, args.networks, args.output))


if __name__ == "__main__":
    raise SystemExit(main())
