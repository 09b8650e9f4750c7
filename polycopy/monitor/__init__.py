"""Account snapshots, change detection and polling."""
