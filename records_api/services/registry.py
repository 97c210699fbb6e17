from records_api.database import DocumentStore
from records_api.models.records import RESOURCES, ResourceDefinition
from records_api.services.reports import ReportService
from records_api.services.resource import ResourceModule


class ServiceRegistry:
    """One ResourceModule per record type plus the report service.

    The store is injected once here and shared by every module. ``None`` is
    allowed: data operations then raise ``StoreUnavailable`` and reports
    return empty results.
    """

    def __init__(
        self,
        store: DocumentStore | None,
        definitions: tuple[ResourceDefinition, ...] = RESOURCES,
    ) -> None:
        self.store = store
        self.modules = {d.path: ResourceModule(d, store) for d in definitions}
        collections = {d.path: d.collection_name for d in definitions}
        self.reports = ReportService(
            store,
            appointments_collection=collections.get("appointments", "appointments"),
            billing_collection=collections.get("billing", "billing"),
        )

    def __getitem__(self, path: str) -> ResourceModule:
        return self.modules[path]

    def __iter__(self):
        return iter(self.modules.values())
