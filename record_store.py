"""
Flat-file record store for forecast scenarios.

The document layout is {"scenarios": {scenario_id: {...tables...}}}; each
table holds rows in the field names the engine's records read. Saved bundle
simulations sit in a scenario's "bundle_simulations" table.
"""
import json
import logging
from pathlib import Path

from records import ForecastScenario, SavedSimulation

logger = logging.getLogger(__name__)

SIMULATIONS_TABLE = 'bundle_simulations'


class RecordStoreError(Exception):
    """The store file could not be read or the scenario does not exist."""


class JsonRecordStore:
    def __init__(self, path):
        self.path = Path(path)

    def _read(self):
        if not self.path.exists():
            return {'scenarios': {}}
        try:
            with self.path.open(encoding='utf-8') as fh:
                document = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise RecordStoreError(f"Cannot read record store {self.path}: {exc}") from exc
        if not isinstance(document, dict):
            raise RecordStoreError(f"Record store {self.path} is not a JSON object")

        scenarios = document.setdefault('scenarios', {})
        if not isinstance(scenarios, dict):
            raise RecordStoreError(f"Record store {self.path}: 'scenarios' is not an object")
        for scenario_id, doc in scenarios.items():
            if not isinstance(doc, dict):
                raise RecordStoreError(f"Record store {self.path}: scenario {scenario_id!r} is not an object")
        return document

    def _write(self, document):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self.path.open('w', encoding='utf-8') as fh:
                json.dump(document, fh, indent=2)
        except OSError as exc:
            raise RecordStoreError(f"Cannot write record store {self.path}: {exc}") from exc

    def _scenario_doc(self, document, scenario_id):
        try:
            return document['scenarios'][scenario_id]
        except KeyError:
            raise RecordStoreError(f"Unknown scenario: {scenario_id}") from None

    def list_scenarios(self):
        """(id, name) for every stored scenario"""
        scenarios = self._read()['scenarios']
        return [(scenario_id, doc.get('name') or scenario_id) for scenario_id, doc in scenarios.items()]

    def load_scenario(self, scenario_id):
        doc = self._scenario_doc(self._read(), scenario_id)

        try:
            scenario = ForecastScenario.from_document(scenario_id, doc)
        except (TypeError, ValueError, AttributeError) as exc:
            raise RecordStoreError(f"Malformed rows in scenario {scenario_id}: {exc}") from exc

        logger.info("Loaded scenario %s (%d plans, %d add-ons)",
                    scenario_id, len(scenario.pricing_plans), len(scenario.add_on_features))
        return scenario

    def save_scenario(self, scenario):
        document = self._read()
        previous = document['scenarios'].get(scenario.id, {})

        doc = scenario.to_document()
        if SIMULATIONS_TABLE in previous:
            doc[SIMULATIONS_TABLE] = previous[SIMULATIONS_TABLE]
        document['scenarios'][scenario.id] = doc

        self._write(document)
        logger.info("Saved scenario %s to %s", scenario.id, self.path)

    def delete_scenario(self, scenario_id):
        document = self._read()
        if document['scenarios'].pop(scenario_id, None) is None:
            raise RecordStoreError(f"Unknown scenario: {scenario_id}")
        self._write(document)
        logger.info("Deleted scenario %s", scenario_id)

    def list_simulations(self, scenario_id):
        """Saved bundle simulations of a scenario, oldest first"""
        doc = self._scenario_doc(self._read(), scenario_id)
        rows = doc.get(SIMULATIONS_TABLE) or []

        try:
            return [SavedSimulation.from_row(row) for row in rows]
        except (TypeError, ValueError, AttributeError) as exc:
            raise RecordStoreError(f"Malformed bundle simulations in scenario {scenario_id}: {exc}") from exc

    def save_simulation(self, scenario_id, simulation):
        """Append a named bundle simulation to the scenario; a blank name is rejected"""
        if not simulation.name.strip():
            raise RecordStoreError("Bundle simulation needs a name")

        document = self._read()
        doc = self._scenario_doc(document, scenario_id)
        rows = doc.get(SIMULATIONS_TABLE) or []
        if not isinstance(rows, list):
            raise RecordStoreError(f"Malformed bundle simulations in scenario {scenario_id}")

        rows.append(simulation.to_row())
        doc[SIMULATIONS_TABLE] = rows

        self._write(document)
        logger.info("Saved bundle simulation %r for scenario %s", simulation.name, scenario_id)
