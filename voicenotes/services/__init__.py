"""Service layer: storage, transcription, annotation, auth and the batch orchestrator."""
