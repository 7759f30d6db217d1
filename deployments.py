#!/usr/bin/env python3
"""Create the Prefect deployment for the Teller yields flow from remote code storage.

Follows the Prefect docs pattern:

	flow.from_source(source=..., entrypoint=...).deploy(...)

Remote storage (git) means the worker's runtime container does not need to
ship this repository.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any
from prefect.schedules import Cron


@dataclass(frozen=True)
class DeploymentSpec:
	name: str
	entrypoint: str
	cron: str


DEPLOYMENTS: tuple[DeploymentSpec, ...] = (
	DeploymentSpec(
		name="hourly-teller-pools",
		entrypoint="teller_yields/pipelines/flows/teller_pools.py:teller_pools_flow",
		cron="0 * * * *",
	),
)


def _build_source(source: str, ref: str | None) -> Any:
	"""Return a `source` value compatible with `flow.from_source`."""
	if not ref:
		return source

	from prefect.runner.storage import GitRepository

	return GitRepository(url=source, reference=ref)


def deploy_from_source(
	*,
	source: str,
	ref: str | None,
	work_pool_name: str,
	work_queue_name: str | None,
	image: str | None,
	timezone: str | None,
) -> None:
	from prefect import flow

	src = _build_source(source, ref)

	errors: list[str] = []
	for spec in DEPLOYMENTS:
		try:
			remote_flow = flow.from_source(source=src, entrypoint=spec.entrypoint)

			deploy_kwargs: dict[str, Any] = {
				"name": spec.name,
				"work_pool_name": work_pool_name,
				"schedules": [Cron(spec.cron, timezone=timezone)],
			}
			if work_queue_name:
				deploy_kwargs["work_queue_name"] = work_queue_name
			if image:
				deploy_kwargs["job_variables"] = {"image": image}

			remote_flow.deploy(**deploy_kwargs)
			print(f"Deployed {spec.name}")
		except Exception as exc:
			errors.append(f"{spec.name}: {exc}")

	if errors:
		msg = "One or more deployments failed:\n" + "\n".join(f"- {e}" for e in errors)
		raise SystemExit(msg)


def main() -> None:
	p = argparse.ArgumentParser(description="Create the Teller yields Prefect deployment via remote code storage (git).")
	p.add_argument("--work-pool", required=True, help="Prefect work pool name")
	p.add_argument("--work-queue", default=None, help="Optional work queue name")
	p.add_argument(
		"--source",
		required=True,
		help="Remote code storage source (git URL, s3://, gs://, az://).",
	)
	p.add_argument("--ref", default=None, help="Optional git ref (branch/tag/commit).")
	p.add_argument("--image", default=None, help="Optional image override via job variables.")
	p.add_argument("--timezone", default="UTC", help="Schedule timezone for the cron (default: UTC).")
	args = p.parse_args()

	deploy_from_source(
		source=args.source,
		ref=args.ref,
		work_pool_name=args.work_pool,
		work_queue_name=args.work_queue,
		image=args.image,
		timezone=args.timezone,
	)


if __name__ == "__main__":
	main()
