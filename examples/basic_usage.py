from mysql_capture import TriggerManager, TriggerSpec
from mysql_capture.config import DatabaseSettings


def run_example():
    print("--- MySQL Capture: Basic Example ---")

    # 1. Connect using CAPTURE_DB_* environment variables
    with TriggerManager.connect(DatabaseSettings.from_env()) as manager:
        ex = manager.executor

        # 2. Create a table and the capture tables
        ex.execute("DROP TABLE IF EXISTS tasks")
        ex.execute("""
            CREATE TABLE tasks (
                id INT PRIMARY KEY,
                title VARCHAR(200) NOT NULL,
                completed INT DEFAULT 0
            )
        """)
        manager.prepare_tables("rr_pending_changes", "rr_running_flags")

        # 3. Install capture for the table
        spec = TriggerSpec(
            trigger_name="rr_tasks",
            table="tasks",
            keys=["id"],
            activity_table="rr_running_flags",
            exclude_own_activity=True,
        )
        manager.install(spec)
        print(f"Capture installed: {manager.exists('rr_tasks', 'tasks')}")

        # 4. Perform some operations
        ex.execute("INSERT INTO tasks (id, title) VALUES (1, 'Learn triggers')")
        ex.execute("UPDATE tasks SET completed = 1 WHERE id = 1")

        # 5. Writes made while activity is marked are not captured
        with manager.activity("rr_running_flags").active():
            ex.execute("INSERT INTO tasks (id, title) VALUES (2, 'Replicated row')")

        ex.execute("DELETE FROM tasks WHERE id = 1")

        # 6. Inspect the change log
        for entry in manager.read_log("rr_pending_changes"):
            print(f"  {entry.change_type.value} {entry.change_table} "
                  f"key={entry.change_key} org_key={entry.change_org_key}")

        # 7. Tear down
        manager.remove("rr_tasks", "tasks")
        print(f"Capture installed: {manager.exists('rr_tasks', 'tasks')}")


if __name__ == "__main__":
    run_example()
