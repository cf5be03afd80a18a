"""Workers package: scheduled batch jobs."""
