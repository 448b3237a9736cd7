"""Row stores: the persistence collaborator the sync service writes through."""
