"""Use cases — end-to-end flows invoked by the CLI."""
