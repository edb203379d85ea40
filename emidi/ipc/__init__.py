"""In-process event messaging: shared types, events, named services, publishers, subscribers, music sync and service management."""