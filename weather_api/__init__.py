"""Weather station data-collection API."""
