#!/usr/bin/env python3
"""Example: Quickstart for dashboard-sync

Sign in, load the board, and make a few optimistic changes against a
running dashboard backend.

Usage:
    DASHBOARD_SYNC_BASE_URL=http://localhost:8000/api \
        python examples/01_quickstart.py you@example.com secret

Requirements:
    pip install dashboard-sync
"""
from __future__ import annotations

import asyncio
import sys

import dashboard_sync
from dashboard_sync import (
    DashboardClient,
    InMemoryCredentialStore,
    OutcomeStatus,
    TaskStatus,
    load_config,
)


async def main(email: str, password: str) -> int:
    print(f"dashboard-sync version: {dashboard_sync.__version__}")

    config = load_config()
    async with DashboardClient(config, credentials=InMemoryCredentialStore()) as client:
        # Step 1: sign in
        result = await client.login(email, password)
        if not result.success:
            print(f"Sign-in failed: {result.error.message}")  # type: ignore[union-attr]
            return 1
        print(f"Signed in as {result.data.user.email}")

        # Step 2: load tasks, files and chat history
        await client.refresh()
        print(f"Board: {len(client.snapshot.tasks)} tasks, {len(client.snapshot.files)} files")

        # Step 3: the task shows up in the store before the backend answers
        pending = client.coordinator.submit(
            dashboard_sync.MutationIntent.create_task("Try dashboard-sync")
        )
        print(f"  Speculative tasks: {[task.title for task in client.snapshot.tasks][-1:]}")
        created = await pending
        if created.status is not OutcomeStatus.COMMITTED:
            print(f"Create failed: {created.error.message}")  # type: ignore[union-attr]
            return 1
        task_id = created.record.id  # type: ignore[union-attr]
        print(f"  Created task {task_id} (was {created.provisional_id})")

        # Step 4: move it across the board, then clean up
        moved = await client.move_task(task_id, TaskStatus.DONE)
        print(f"  Move: {moved.status.value}")
        deleted = await client.delete_task(task_id)
        print(f"  Delete: {deleted.status.value}")

        client.logout()
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2])))
