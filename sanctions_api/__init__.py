"""HTTP adapter for the Sanctions Law Reference Service."""
