"""Example Reflex app demonstrating the admin table and form modal.

One page with:
  1. Users table -- server-mode ``DataTableMixin`` backed by a
     ``LazyFrameResourceService``; search, sort and pagination run as
     polars queries and only one page is collected per event.
  2. User form -- ``FormModalMixin`` with a paginated entity select,
     a profile select that only appears once an entity is chosen, and a
     permissions matrix.
  3. Entity form -- opened from the "Create New" entry of the entity
     select; the new entity is patched back into the open user form.
"""

from datetime import date, timedelta
from typing import Any

import polars as pl
import reflex as rx

from reflex_admin_grid import (
    Conditional,
    DataTableMixin,
    FieldConfig,
    FieldType,
    FormConfig,
    FormMode,
    FormModalMixin,
    GridMode,
    LazyFrameResourceService,
    Module,
    PaginatedSelectConfig,
    PermissionsConfig,
    SelectOption,
    TableAction,
    TableColumn,
    TableConfig,
    TableSpec,
    data_table,
    form_modal,
    format_date_medium,
    options_loader,
    validators,
)
from reflex_admin_grid.errors import ResourceError, extract_error_message

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

_ENTITY_NAMES: list[str] = [
    "Acme Utilities", "Blue River Water", "Cedar Grid Co", "Delta Energy",
    "Evergreen Power", "Falcon Metering", "Granite Gas", "Harbor Electric",
    "Ion Networks", "Juniper Services", "Keystone Light", "Lakeside Water",
]

_FIRST_NAMES: list[str] = [
    "Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Hank",
    "Ivy", "Jack", "Karen", "Leo", "Mona", "Nick", "Olivia",
]

MODULES: tuple[Module, ...] = (
    Module(id="users", name="Users"),
    Module(id="roles", name="Roles"),
    Module(id="entities", name="Entities"),
    Module(id="meters", name="Meters"),
)

PROFILES: tuple[SelectOption, ...] = (
    SelectOption(value="admin", label="Administrator"),
    SelectOption(value="operator", label="Operator"),
    SelectOption(value="viewer", label="Viewer"),
)


def _build_entities() -> pl.LazyFrame:
    """Create a sample LazyFrame of entities."""
    return pl.LazyFrame(
        {
            "id": [f"E{i + 1}" for i in range(len(_ENTITY_NAMES))],
            "name": _ENTITY_NAMES,
            "status": ["active" if i % 4 else "inactive" for i in range(len(_ENTITY_NAMES))],
        }
    )


def _build_users() -> pl.LazyFrame:
    """Create a sample LazyFrame of users spread across the entities."""
    count = 45
    start = date(2024, 1, 8)
    return pl.LazyFrame(
        {
            "id": list(range(1, count + 1)),
            "name": [f"{_FIRST_NAMES[i % len(_FIRST_NAMES)]} {i + 1}" for i in range(count)],
            "email": [f"user{i + 1}@example.com" for i in range(count)],
            "entityId": [f"E{i % len(_ENTITY_NAMES) + 1}" for i in range(count)],
            "entityName": [_ENTITY_NAMES[i % len(_ENTITY_NAMES)] for i in range(count)],
            "profileId": [PROFILES[i % len(PROFILES)].value for i in range(count)],
            "status": [("active", "pending", "inactive")[i % 3] for i in range(count)],
            "createdAt": [start + timedelta(days=9 * i) for i in range(count)],
            "lastLogin": [None if i % 5 == 0 else start + timedelta(days=11 * i) for i in range(count)],
        }
    )


ENTITIES = LazyFrameResourceService(_build_entities(), name="entities", search_fields=["name"])
USERS = LazyFrameResourceService(
    _build_users(),
    name="users",
    search_fields=["name", "email", "entityName"],
    latency=0.2,
)

_STATUS_COLORS: dict[str, str] = {"active": "success", "pending": "warning", "inactive": "error"}


def _entity_name(entity_id: Any) -> str:
    row = ENTITIES.lazyframe.filter(pl.col("id") == str(entity_id)).select("name").collect()
    return row.item() if row.height else ""


# ---------------------------------------------------------------------------
# Users table
# ---------------------------------------------------------------------------

class UsersTable(DataTableMixin, rx.State):
    """Server-mode users table."""

    def get_table_spec(self) -> TableSpec:
        return TableSpec(
            columns=[
                TableColumn("name", "Name"),
                TableColumn("email", "Email"),
                TableColumn("entityName", "Entity"),
                TableColumn(
                    "status",
                    "Status",
                    type="badge",
                    badge_color=lambda row: _STATUS_COLORS.get(row.get("status"), "info"),
                ),
                TableColumn(
                    "createdAt",
                    "Created",
                    render=lambda row: format_date_medium(row.get("createdAt")),
                ),
                TableColumn(
                    "lastLogin",
                    "Last Login",
                    searchable=False,
                    render=lambda row: format_date_medium(row.get("lastLogin")),
                ),
            ],
            service=USERS,
            mode=GridMode.SERVER,
            config=TableConfig(title="Users", search_placeholder="Search users..."),
            actions=[
                TableAction("Edit", action=lambda row: UserForm.open_fm_edit(row["id"])),
                TableAction(
                    "Delete",
                    variant="error",
                    action=lambda row: UsersTable.delete_user(row["id"]),
                    show=lambda row: row.get("status") != "active",
                ),
            ],
        )

    async def delete_user(self, row_id: str):
        try:
            await USERS.delete(row_id)
        except ResourceError as exc:
            message = extract_error_message(exc)
            yield rx.toast.error(message.title, description=message.message)
            return
        yield rx.toast.success("User deleted")
        yield UsersTable.refresh_dt_table


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

class UserForm(FormModalMixin, rx.State):
    """Create/edit dialog for users."""

    def get_form_config(self) -> FormConfig:
        mode = FormMode(self.fm_mode)
        row_id = self.fm_row_id

        async def save(values: dict[str, Any]):
            # The sample frame keeps a module count rather than nested structs.
            payload = {k: v for k, v in values.items() if k != "permissions"}
            payload["entityName"] = _entity_name(values.get("entityId"))
            payload["modules"] = len(values.get("permissions") or [])
            if mode == FormMode.UPDATE:
                return await USERS.update(row_id, payload)
            return await USERS.create(payload)

        return FormConfig(
            title="Edit User" if mode == FormMode.UPDATE else "Create User",
            subtitle="Users belong to exactly one entity.",
            mode=mode,
            on_submit=save,
            on_success=lambda _response: UsersTable.refresh_dt_table,
            fields=[
                FieldConfig("name", "Name", required=True, grid_cols=6,
                            validators=(validators.min_length(2),)),
                FieldConfig("email", "Email", type=FieldType.EMAIL, required=True, grid_cols=6,
                            validators=(validators.email(),)),
                FieldConfig(
                    "entityId",
                    "Entity",
                    type=FieldType.PAGINATED_SELECT,
                    required=True,
                    placeholder="Select an entity",
                    paginated_select=PaginatedSelectConfig(
                        load_options=options_loader(ENTITIES, label_key="name"),
                        items_per_page=5,
                        allow_create=True,
                        create_label="Create new entity",
                    ),
                ),
                FieldConfig(
                    "profileId",
                    "Profile",
                    type=FieldType.SELECT,
                    required=True,
                    options=PROFILES,
                    placeholder="Select a profile",
                    conditional=Conditional(depends_on="entityId", condition=bool),
                    hint="Available once an entity is selected.",
                ),
                FieldConfig(
                    "status",
                    "Status",
                    type=FieldType.SELECT,
                    default_value="pending",
                    options=(
                        SelectOption("active", "Active"),
                        SelectOption("pending", "Pending"),
                        SelectOption("inactive", "Inactive"),
                    ),
                    grid_cols=6,
                ),
                FieldConfig("createdAt", "Created", type=FieldType.DATE, disabled=True, grid_cols=6),
                FieldConfig(
                    "permissions",
                    "Permissions",
                    type=FieldType.PERMISSIONS,
                    permissions=PermissionsConfig(modules=MODULES),
                    order=10,
                ),
            ],
        )

    async def load_fm_record(self, row_id: str) -> dict[str, Any]:
        response = await USERS.get_by_id(row_id)
        return response.data

    def on_fm_create_requested(self, key: str):
        return EntityForm.open_fm_create


class EntityForm(FormModalMixin, rx.State):
    """Nested "create entity" dialog opened from the user form."""

    def get_form_config(self) -> FormConfig:
        async def save(values: dict[str, Any]):
            return await ENTITIES.create(values)

        def created(response: Any):
            entity = response.data
            return UserForm.patch_fm_values({"entityId": entity["id"]}, {"entityId": entity["name"]})

        return FormConfig(
            title="Create Entity",
            on_submit=save,
            on_success=created,
            fields=[
                FieldConfig("name", "Name", required=True),
                FieldConfig(
                    "status",
                    "Status",
                    type=FieldType.SELECT,
                    default_value="active",
                    options=(SelectOption("active", "Active"), SelectOption("inactive", "Inactive")),
                ),
            ],
        )


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------

def index() -> rx.Component:
    return rx.box(
        rx.heading("Admin Grid -- Reflex Demo", size="6", margin_bottom="1em"),
        rx.hstack(
            rx.spacer(),
            rx.button("New user", on_click=UserForm.open_fm_create),
            width="100%",
            margin_bottom="1em",
        ),
        data_table(UsersTable),
        form_modal(UserForm),
        form_modal(EntityForm),
        padding="2em",
        max_width="1200px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=UsersTable.load_dt_table)
