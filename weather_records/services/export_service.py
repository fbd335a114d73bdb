import csv
import io
import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from weather_records.models.weather_record import WeatherRecord
from weather_records.schemas.records import WeatherRecordOut


class UnsupportedExportFormat(ValueError):
    pass


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    media_type: str
    filename: str


CSV_HEADER = ["ID", "Location", "Start Date", "End Date", "Created At", "Weather Data Count"]


def sample_count(record: WeatherRecord) -> int:
    payload = record.weather_data or {}
    samples = payload.get("weather_data") if isinstance(payload, dict) else None
    return len(samples) if isinstance(samples, list) else 0


def _iso(value: Any) -> str:
    return value.isoformat() if value is not None else ""


class ExportService:
    """
    Renders a user's records as a downloadable JSON, CSV or XML document.

    Output only depends on the records passed in, so exporting the same
    records twice yields byte-identical files.
    """

    FILENAME = "weather_data"

    def render(self, records: Sequence[WeatherRecord], fmt: str) -> ExportFile:
        renderers = {
            "json": self.to_json,
            "csv": self.to_csv,
            "xml": self.to_xml,
        }
        renderer = renderers.get((fmt or "").lower())
        if renderer is None:
            raise UnsupportedExportFormat("Unsupported export format")
        return renderer(records)

    def to_json(self, records: Sequence[WeatherRecord]) -> ExportFile:
        rows: List[Dict[str, Any]] = [
            WeatherRecordOut.model_validate(r).model_dump(mode="json") for r in records
        ]
        body = json.dumps(rows, ensure_ascii=False, sort_keys=True, indent=2)
        return ExportFile(body.encode("utf-8"), "application/json", f"{self.FILENAME}.json")

    def to_csv(self, records: Sequence[WeatherRecord]) -> ExportFile:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for r in records:
            writer.writerow([
                r.id,
                r.location,
                _iso(r.start_date),
                _iso(r.end_date),
                _iso(r.created_at),
                sample_count(r),
            ])
        return ExportFile(buf.getvalue().encode("utf-8"), "text/csv", f"{self.FILENAME}.csv")

    def to_xml(self, records: Sequence[WeatherRecord]) -> ExportFile:
        root = ET.Element("weatherData")
        for r in records:
            node = ET.SubElement(root, "record", id=str(r.id))
            ET.SubElement(node, "location").text = r.location
            ET.SubElement(node, "startDate").text = _iso(r.start_date)
            ET.SubElement(node, "endDate").text = _iso(r.end_date)
            ET.SubElement(node, "createdAt").text = _iso(r.created_at)
            ET.SubElement(node, "weatherDataCount").text = str(sample_count(r))

        ET.indent(root, space="  ")
        body = ET.tostring(root, encoding="utf-8", xml_declaration=True)
        return ExportFile(body, "application/xml", f"{self.FILENAME}.xml")
