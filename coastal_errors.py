# coastal_errors.py
# Error taxonomy shared by ingestion, analysis and layer serving

from typing import Dict, List, Optional


class CoastalError(Exception):
    """Base class for errors surfaced to callers as structured payloads."""

    kind = "CoastalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {"kind": self.kind, "message": self.message}


class UnsupportedFormatError(CoastalError):
    kind = "UnsupportedFormat"

    def __init__(self, message: str = "Unsupported file format. Use CSV, GeoJSON, or Shapefile (ZIP)."):
        super().__init__(message)


class ColumnDetectionError(CoastalError):
    """Tabular input without recognizable latitude/longitude columns.

    Carries the header row exactly as uploaded so a user can fix it upstream.
    """

    kind = "ColumnDetection"

    def __init__(self, headers: List[str], message: Optional[str] = None):
        super().__init__(
            message or "Could not detect geospatial columns. "
                       "Please ensure columns formatted as Lat/Lon exist."
        )
        self.headers = list(headers)

    def to_dict(self) -> Dict:
        d = super().to_dict()
        d["headers"] = list(self.headers)
        return d


class EmptyInputError(CoastalError):
    kind = "EmptyInput"

    def __init__(self, message: str = "Empty or invalid CSV"):
        super().__init__(message)


class InvalidGeoJSONError(CoastalError):
    kind = "InvalidGeoJSON"

    def __init__(self, message: str = "Invalid GeoJSON structure"):
        super().__init__(message)


class ProcessingFailedError(CoastalError):
    kind = "ProcessingFailed"

    def __init__(self, details: str):
        super().__init__(f"Processing failed: {details}")
        self.details = details

    def to_dict(self) -> Dict:
        d = super().to_dict()
        d["details"] = self.details
        return d


class MissingParametersError(CoastalError):
    kind = "MissingParameters"

    def __init__(self, message: str = "Missing parameters"):
        super().__init__(message)


class LayerNotFoundError(CoastalError):
    kind = "LayerNotFound"

    def __init__(self, layer_name: str):
        super().__init__(f"Layer not found: {layer_name}")
        self.layer_name = layer_name
