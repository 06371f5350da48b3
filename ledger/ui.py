from __future__ import annotations

import datetime as dt
from pathlib import Path

import streamlit as st

from ledger.config.loader import ConfigLoader
from ledger.config.schemas import DashboardSettings, Dataset, Project, ProjectStatus
from ledger.config.validation import RuntimeValidator
from ledger.core.aggregation import (
    assignment_rows,
    budget_distribution,
    compute_portfolio_stats,
    compute_project_costs,
    contractor_summary,
    earnings_share,
    expense_ledger,
    round_half_away,
    status_counts,
)
from ledger.core.store import ProjectStore, StoreError
from ledger.core.ui_state import (
    CloseDialog,
    DialogKind,
    EditProject,
    SelectTab,
    StopEditing,
    Tab,
    ToggleDialog,
    UIState,
    UpdateDraft,
    reduce,
    submit_draft,
)
from ledger.logger import configure_logging


CONFIG_DIR = Path("config")
SETTINGS_PATH = CONFIG_DIR / "dashboard.yaml"

STATUS_LABELS = {
    ProjectStatus.ACTIVE: "Активен",
    ProjectStatus.COMPLETED: "Завершен",
    ProjectStatus.PAUSED: "На паузе",
}

STATUS_ICONS = {
    ProjectStatus.ACTIVE: "🟢",
    ProjectStatus.COMPLETED: "🔵",
    ProjectStatus.PAUSED: "🟡",
}

TAB_LABELS = {
    Tab.PROJECTS: "Проекты",
    Tab.CONTRACTORS: "Исполнители",
    Tab.FINANCES: "Финансы",
    Tab.ANALYTICS: "Аналитика",
}


@st.cache_data(show_spinner=False)
def load_data() -> tuple[DashboardSettings, Dataset | None, list[str]]:
    warnings: list[str] = []
    try:
        settings = ConfigLoader.load_settings(SETTINGS_PATH)
    except Exception as exc:  # noqa: BLE001
        warnings.append(f"Ошибка dashboard.yaml: {exc}")
        settings = DashboardSettings()

    dataset = None
    if settings.data_file.exists():
        try:
            dataset = ConfigLoader.load_dataset(settings.data_file)
        except Exception as exc:  # noqa: BLE001
            warnings.append(f"Ошибка {settings.data_file.name}: {exc}")
    else:
        warnings.append(f"{settings.data_file} не найден, начинаем с пустого набора")

    if dataset is not None:
        warnings.extend(RuntimeValidator.validate_dataset(dataset).warnings)

    return settings, dataset, warnings


def money(value: float, currency: str) -> str:
    return f"{value:,.0f} {currency}".replace(",", " ")


def thousands(value: float, currency: str) -> str:
    return f"{value / 1000:.0f}k {currency}"


def get_store(dataset: Dataset | None) -> ProjectStore:
    if "store" not in st.session_state:
        st.session_state["store"] = ProjectStore(dataset or Dataset())
    return st.session_state["store"]


def get_ui_state() -> UIState:
    return st.session_state.setdefault("ui_state", UIState())


def dispatch(action: object) -> UIState:
    state = reduce(get_ui_state(), action)
    st.session_state["ui_state"] = state
    return state


def run_command(command, success: str) -> bool:
    try:
        command()
    except StoreError as exc:
        st.toast(f"Заполните все поля: {exc}", icon="⚠️")
        return False
    st.toast(success, icon="✅")
    return True


def submit(kind: DialogKind, store: ProjectStore, success: str) -> bool:
    try:
        state, _ = submit_draft(get_ui_state(), kind, store)
    except StoreError as exc:
        st.toast(f"Заполните все поля: {exc}", icon="⚠️")
        return False
    st.session_state["ui_state"] = state
    st.toast(success, icon="✅")
    return True


def dialog_toggle(kind: DialogKind, label: str, key: str) -> bool:
    if st.button(label, key=key):
        dispatch(ToggleDialog(kind))
        st.rerun()
    return get_ui_state().open_dialog == kind


def draft_text(kind: DialogKind, field_name: str, label: str, key: str, **kwargs) -> str:
    current = getattr(get_ui_state().draft_for(kind), field_name)
    value = st.text_input(label, value=current, key=key, **kwargs)
    if value != current:
        dispatch(UpdateDraft(kind, field_name, value))
    return value


def draft_number(kind: DialogKind, field_name: str, label: str, key: str, step: float) -> float:
    current = float(getattr(get_ui_state().draft_for(kind), field_name))
    value = float(st.number_input(label, min_value=0.0, value=current, step=step, key=key))
    if value != current:
        dispatch(UpdateDraft(kind, field_name, value))
    return value


def draft_date(kind: DialogKind, label: str, key: str) -> None:
    current = get_ui_state().draft_for(kind).date
    picked = st.date_input(label, value=dt.date.fromisoformat(current), key=key)
    if picked.isoformat() != current:
        dispatch(UpdateDraft(kind, "date", picked.isoformat()))


def dialog_buttons(kind: DialogKind, store: ProjectStore, submit_label: str, success: str, key: str) -> None:
    col_ok, col_cancel = st.columns(2)
    with col_ok:
        if st.button(submit_label, type="primary", use_container_width=True, key=f"{key}_ok"):
            if submit(kind, store, success):
                st.rerun()
    with col_cancel:
        if st.button("Отмена", use_container_width=True, key=f"{key}_cancel"):
            dispatch(CloseDialog(kind))
            st.rerun()


def render_status_picker(kind: DialogKind, key: str) -> None:
    options = [item.value for item in ProjectStatus]
    current = get_ui_state().draft_for(kind).status
    status = st.radio(
        "Статус",
        options=options,
        index=options.index(current) if current in options else 0,
        format_func=lambda value: STATUS_LABELS[ProjectStatus(value)],
        horizontal=True,
        key=key,
    )
    if status != current:
        dispatch(UpdateDraft(kind, "status", status))


def render_sidebar(settings: DashboardSettings, store: ProjectStore, warnings: list[str]) -> None:
    with st.sidebar:
        st.title("⚙️ Настройки")

        if st.button("🔄 Перезагрузить данные"):
            st.cache_data.clear()
            st.session_state.pop("store", None)
            st.session_state.pop("ui_state", None)
            st.rerun()

        dataset = store.dataset
        st.success(f"✅ Проектов: {len(dataset.projects)}, исполнителей: {len(dataset.contractors)}")
        for warning in warnings:
            st.warning(f"⚠️ {warning}")

        st.divider()
        st.download_button(
            "Скачать dataset.yaml",
            ConfigLoader.dump_dataset(dataset),
            file_name="dataset.yaml",
            mime="text/yaml",
        )


def render_header(settings: DashboardSettings, store: ProjectStore) -> None:
    dataset = store.dataset
    stats = compute_portfolio_stats(dataset.projects, dataset.contractors)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Всего проектов", len(dataset.projects))
    col2.metric("Общий бюджет", thousands(stats.total_budget, settings.currency))
    col3.metric("Расходы", thousands(stats.total_costs, settings.currency))
    col4.metric("Чистая прибыль", thousands(stats.total_profit, settings.currency))

    kind = DialogKind.ADD_PROJECT
    if dialog_toggle(kind, "➕ Новый проект", key="toggle_add_project"):
        with st.container(border=True):
            st.subheader("Добавить новый проект")
            draft_text(kind, "name", "Название проекта", key="new_project_name", placeholder="Интернет-магазин одежды")
            draft_text(kind, "client", "Заказчик", key="new_project_client", placeholder="ООО 'Компания'")
            draft_number(kind, "budget", "Бюджет", key="new_project_budget", step=10000.0)
            render_status_picker(kind, key="new_project_status")
            dialog_buttons(kind, store, "Создать проект", "Проект добавлен", key="new_project")


def render_project_editor(settings: DashboardSettings, store: ProjectStore, project: Project) -> None:
    dataset = store.dataset

    st.subheader(f"Редактирование: {project.name}")
    tab_info, tab_team, tab_expenses, tab_incomes = st.tabs(["Основное", "Исполнители", "Расходы", "Приходы"])

    with tab_info:
        kind = DialogKind.EDIT_PROJECT
        draft_text(kind, "name", "Название", key=f"edit_name_{project.id}")
        draft_text(kind, "client", "Заказчик", key=f"edit_client_{project.id}")
        draft_number(kind, "budget", "Бюджет", key=f"edit_budget_{project.id}", step=10000.0)
        render_status_picker(kind, key=f"edit_status_{project.id}")

        col_save, col_close = st.columns(2)
        with col_save:
            if st.button("Сохранить", type="primary", use_container_width=True, key=f"save_{project.id}"):
                if submit(kind, store, "Проект обновлен"):
                    st.rerun()
        with col_close:
            if st.button("Закрыть", use_container_width=True, key=f"close_{project.id}"):
                dispatch(StopEditing())
                st.rerun()

    with tab_team:
        contractors = dataset.contractors_by_id()
        for row in assignment_rows(project, contractors):
            col1, col2, col3 = st.columns([3, 2, 1])
            if row.contractor is None:
                col1.write(f"**Неизвестный исполнитель** ({row.contractor_id})")
                col2.write(f"{row.hours:g} ч, не учитывается в расходах")
            else:
                col1.write(f"**{row.contractor.name}** — {row.contractor.role}")
                col2.write(f"{row.hours:g} ч × {row.contractor.rate:g} = {money(row.cost, settings.currency)}")
            if col3.button("🗑", key=f"rm_assign_{project.id}_{row.index}"):
                if run_command(lambda: store.remove_assignment(project.id, row.index), "Исполнитель удалён"):
                    st.rerun()
        if not project.assignments:
            st.caption("Нет исполнителей")

        kind = DialogKind.PROJECT_ASSIGNMENT
        if contractors and dialog_toggle(kind, "➕ Добавить исполнителя", key=f"toggle_assign_{project.id}"):
            options = list(contractors.keys())
            current = get_ui_state().assignment_draft.contractor_id
            contractor_id = st.selectbox(
                "Исполнитель",
                options=options,
                index=options.index(current) if current in options else 0,
                format_func=lambda value: contractors[value].name,
                key=f"assign_contractor_{project.id}",
            )
            if contractor_id != current:
                dispatch(UpdateDraft(kind, "contractor_id", contractor_id))
            draft_number(kind, "hours", "Часы", key=f"assign_hours_{project.id}", step=1.0)
            dialog_buttons(kind, store, "Добавить", "Исполнитель добавлен", key=f"assign_{project.id}")

    with tab_expenses:
        for expense in project.expenses:
            col1, col2, col3 = st.columns([3, 2, 1])
            col1.write(f"**{expense.description}** · {expense.category} · {expense.date.isoformat()}")
            col2.write(money(expense.amount, settings.currency))
            if col3.button("🗑", key=f"rm_expense_{project.id}_{expense.id}"):
                if run_command(lambda: store.remove_expense(project.id, expense.id), "Расход удалён"):
                    st.rerun()
        if not project.expenses:
            st.caption("Нет расходов")

        kind = DialogKind.PROJECT_EXPENSE
        if dialog_toggle(kind, "➕ Добавить расход", key=f"toggle_expense_{project.id}"):
            draft_text(kind, "description", "Описание", key=f"expense_desc_{project.id}", placeholder="Хостинг на год")
            draft_number(kind, "amount", "Сумма", key=f"expense_amount_{project.id}", step=1000.0)
            draft_text(
                kind,
                "category",
                "Категория",
                key=f"expense_category_{project.id}",
                placeholder="Инфраструктура, ПО, Дизайн...",
            )
            draft_date(kind, "Дата", key=f"expense_date_{project.id}")
            dialog_buttons(kind, store, "Добавить расход", "Расход добавлен", key=f"expense_{project.id}")

    with tab_incomes:
        for income in project.incomes:
            col1, col2, col3 = st.columns([3, 2, 1])
            col1.write(f"**{income.description}** · {income.date.isoformat()}")
            col2.write(money(income.amount, settings.currency))
            if col3.button("🗑", key=f"rm_income_{project.id}_{income.id}"):
                if run_command(lambda: store.remove_income(project.id, income.id), "Приход удалён"):
                    st.rerun()
        if not project.incomes:
            st.caption("Нет приходов")

        kind = DialogKind.PROJECT_INCOME
        if dialog_toggle(kind, "➕ Добавить приход", key=f"toggle_income_{project.id}"):
            draft_text(
                kind,
                "description",
                "Описание",
                key=f"income_desc_{project.id}",
                placeholder="Оплата от клиента, Аванс 50%...",
            )
            draft_number(kind, "amount", "Сумма", key=f"income_amount_{project.id}", step=1000.0)
            draft_date(kind, "Дата", key=f"income_date_{project.id}")
            dialog_buttons(kind, store, "Добавить приход", "Приход добавлен", key=f"income_{project.id}")


def render_projects_tab(settings: DashboardSettings, store: ProjectStore) -> None:
    dataset = store.dataset
    contractors = dataset.contractors_by_id()
    state = get_ui_state()

    if state.editing_project_id is not None:
        try:
            render_project_editor(settings, store, dataset.get_project(state.editing_project_id))
        except KeyError:
            dispatch(StopEditing())
        st.divider()

    if not dataset.projects:
        st.info("Пока нет проектов")

    for project in dataset.projects:
        costs = compute_project_costs(project, contractors)
        with st.container(border=True):
            col1, col2 = st.columns([4, 1])
            with col1:
                st.markdown(f"### {project.name}")
                st.caption(f"{project.client} · {STATUS_ICONS[project.status]} {STATUS_LABELS[project.status]}")
            with col2:
                if st.button("✏️ Редактировать", key=f"edit_{project.id}", use_container_width=True):
                    dispatch(
                        EditProject(
                            project_id=project.id,
                            name=project.name,
                            client=project.client,
                            budget=project.budget,
                            status=project.status.value,
                        )
                    )
                    st.rerun()

            col1, col2, col3, col4 = st.columns(4)
            col1.metric("Бюджет", money(costs.income, settings.currency))
            col2.metric("Исполнители", money(costs.contractors_cost, settings.currency))
            col3.metric("Расходы", money(costs.expenses_cost, settings.currency))
            col4.metric(
                "Прибыль",
                money(costs.profit, settings.currency),
                delta=f"{round_half_away(costs.profit_margin):.1f}%",
            )
            st.caption(
                f"Получено {money(costs.received, settings.currency)}, "
                f"ожидается {money(costs.outstanding, settings.currency)}"
            )


def render_contractors_tab(settings: DashboardSettings, store: ProjectStore) -> None:
    dataset = store.dataset

    kind = DialogKind.ADD_CONTRACTOR
    if dialog_toggle(kind, "➕ Новый исполнитель", key="toggle_add_contractor"):
        with st.container(border=True):
            draft_text(kind, "name", "Имя", key="new_contractor_name")
            draft_text(kind, "role", "Роль", key="new_contractor_role", placeholder="Frontend Developer")
            draft_number(kind, "rate", "Ставка в час", key="new_contractor_rate", step=100.0)
            dialog_buttons(kind, store, "Добавить исполнителя", "Исполнитель добавлен", key="new_contractor")

    columns = st.columns(3)
    for idx, contractor in enumerate(dataset.contractors):
        summary = contractor_summary(contractor, dataset.projects)
        with columns[idx % 3].container(border=True):
            st.markdown(f"**{contractor.name}**")
            st.caption(contractor.role or "Исполнитель")
            st.write(f"Ставка: {contractor.rate:g} {settings.currency}/ч")
            st.write(f"Проектов: {summary.project_count}")
            st.write(f"Часов: {summary.hours:g}")
            st.write(f"Заработано: {money(summary.earned, settings.currency)}")


def render_finances_tab(settings: DashboardSettings, store: ProjectStore) -> None:
    dataset = store.dataset
    contractors = dataset.contractors_by_id()
    col_income, col_expense = st.columns(2)

    with col_income:
        st.subheader("Доходы")
        for project in dataset.projects:
            costs = compute_project_costs(project, contractors)
            st.write(f"**{project.name}** — {money(costs.received, settings.currency)} из {money(costs.income, settings.currency)}")

    with col_expense:
        st.subheader("Расходы")
        for line in expense_ledger(dataset.projects):
            st.write(
                f"**{line.expense.description}** ({line.project_name}, {line.expense.category}) — "
                f"{money(line.expense.amount, settings.currency)}"
            )
        for contractor in dataset.contractors:
            summary = contractor_summary(contractor, dataset.projects)
            if summary.earned == 0:
                continue
            st.write(f"**{contractor.name}** (оплата работ) — {money(summary.earned, settings.currency)}")


def render_analytics_tab(settings: DashboardSettings, store: ProjectStore) -> None:
    dataset = store.dataset
    stats = compute_portfolio_stats(dataset.projects, dataset.contractors)

    st.subheader("Топ исполнителей по доходу")
    st.caption("Рейтинг исполнителей по общему заработку за все проекты")
    for idx, entry in enumerate(stats.contractor_earnings, start=1):
        share = earnings_share(entry, stats)
        st.write(f"{idx}. **{entry.contractor.name}** — {money(entry.earnings, settings.currency)}")
        st.progress(min(max(share, 0.0), 100.0) / 100, text=f"{round_half_away(share):.1f}% от расходов")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Распределение бюджета")
        distribution = budget_distribution(dataset.projects, dataset.contractors)
        for label, value in (
            ("Исполнители", distribution.contractors_share),
            ("Прочие расходы", distribution.expenses_share),
            ("Прибыль", distribution.profit_share),
        ):
            st.progress(min(max(value, 0.0), 100.0) / 100, text=f"{label}: {round_half_away(value):.1f}%")

    with col2:
        st.subheader("Статистика проектов")
        for status, count in status_counts(dataset.projects).items():
            st.metric(STATUS_LABELS[status], count)


TAB_RENDERERS = {
    Tab.PROJECTS: render_projects_tab,
    Tab.CONTRACTORS: render_contractors_tab,
    Tab.FINANCES: render_finances_tab,
    Tab.ANALYTICS: render_analytics_tab,
}


def main() -> None:
    st.set_page_config(
        page_title="Project Ledger",
        page_icon="📊",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    settings, dataset, warnings = load_data()
    configure_logging(settings.log_level)

    st.title(f"📊 {settings.title}")
    st.caption("Управление разработкой, исполнителями и финансами")

    store = get_store(dataset)
    render_sidebar(settings, store, warnings)

    try:
        render_header(settings, store)

        tabs = list(Tab)
        active = get_ui_state().active_tab
        selected = st.radio(
            "Раздел",
            options=tabs,
            index=tabs.index(active),
            format_func=lambda tab: TAB_LABELS[tab],
            horizontal=True,
            label_visibility="collapsed",
            key="active_tab",
        )
        if selected != active:
            dispatch(SelectTab(selected))

        st.divider()
        TAB_RENDERERS[selected](settings, store)
    except Exception as exc:  # noqa: BLE001
        st.exception(exc)


if __name__ == "__main__":
    main()
