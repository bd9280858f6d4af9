from fieldsense.blueprints.api.ingestion import ingestion_api

__all__ = ["ingestion_api"]
