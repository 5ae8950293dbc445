from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import CycleStatus, EvaluationStatus, EvaluatorRole, TemplateType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_utc, db_cursor, fetchall, fetchone, from_json, to_db_datetime, to_json
from .model import (
    ApplicableTo,
    Competency,
    CompetencyRating,
    CycleStats,
    EvaluationCycle,
    EvaluationInstance,
    EvaluationTemplate,
    GeneralAnswer,
    GeneralQuestion,
    Objective,
    ObjectiveRating,
    RatingScale,
    Review,
    TemplateConfig,
)
from .repository import (
    EvaluationCycleRepository,
    EvaluationFilters,
    EvaluationRepository,
    EvaluationTemplateRepository,
)

_INSTANCE_COLUMNS = (
    "evaluation_id, tenant_id, cycle_id, template_id, evaluated_employee_id, evaluated_employee_name, "
    "evaluated_employee_department, evaluated_employee_position, evaluator_id, evaluator_name, evaluator_role, "
    "competency_ratings, objective_ratings, general_answers, overall_rating, overall_comment, status, "
    "submitted_at, submitted_by, manager_review, hr_review, started_at, completed_at, due_date, created_at"
)


def _row_to_instance(r: dict) -> EvaluationInstance:
    return EvaluationInstance(
        evaluation_id=str(r["evaluation_id"]),
        tenant_id=str(r["tenant_id"]),
        cycle_id=str(r["cycle_id"]),
        template_id=str(r["template_id"]),
        evaluated_employee_id=str(r["evaluated_employee_id"]),
        evaluated_employee_name=r["evaluated_employee_name"],
        evaluated_employee_department=r.get("evaluated_employee_department"),
        evaluated_employee_position=r.get("evaluated_employee_position"),
        evaluator_id=str(r["evaluator_id"]),
        evaluator_name=r["evaluator_name"],
        evaluator_role=EvaluatorRole(r["evaluator_role"]),
        competency_ratings=tuple(CompetencyRating.from_dict(x) for x in from_json(r.get("competency_ratings"), [])),
        objective_ratings=tuple(ObjectiveRating.from_dict(x) for x in from_json(r.get("objective_ratings"), [])),
        general_answers=tuple(GeneralAnswer.from_dict(x) for x in from_json(r.get("general_answers"), [])),
        overall_rating=r.get("overall_rating"),
        overall_comment=r.get("overall_comment"),
        status=EvaluationStatus(r["status"]),
        submitted_at=as_utc(r.get("submitted_at")),
        submitted_by=r.get("submitted_by"),
        manager_review=Review.from_dict(from_json(r.get("manager_review"))),
        hr_review=Review.from_dict(from_json(r.get("hr_review"))),
        started_at=as_utc(r.get("started_at")),
        completed_at=as_utc(r.get("completed_at")),
        due_date=as_utc(r.get("due_date")),
        created_at=as_utc(r.get("created_at")),
    )


def _instance_params(e: EvaluationInstance) -> tuple:
    return (
        e.tenant_id,
        e.cycle_id,
        e.template_id,
        e.evaluated_employee_id,
        e.evaluated_employee_name,
        e.evaluated_employee_department,
        e.evaluated_employee_position,
        e.evaluator_id,
        e.evaluator_name,
        e.evaluator_role.value,
        to_json([x.to_dict() for x in e.competency_ratings]),
        to_json([x.to_dict() for x in e.objective_ratings]),
        to_json([x.to_dict() for x in e.general_answers]),
        e.overall_rating,
        e.overall_comment,
        e.status.value,
        to_db_datetime(e.submitted_at),
        e.submitted_by,
        to_json(e.manager_review.to_dict()) if e.manager_review else None,
        to_json(e.hr_review.to_dict()) if e.hr_review else None,
        to_db_datetime(e.started_at),
        to_db_datetime(e.completed_at),
        to_db_datetime(e.due_date),
    )


class MySQLEvaluationRepository(EvaluationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, tenant_id: str, evaluation_id: str) -> Optional[EvaluationInstance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_INSTANCE_COLUMNS} FROM evaluation_instances WHERE tenant_id=%s AND evaluation_id=%s",
                (tenant_id, evaluation_id),
            )
            r = fetchone(cur)
            return _row_to_instance(r) if r else None

    def find(self, tenant_id: str, filters: EvaluationFilters) -> Sequence[EvaluationInstance]:
        where = ["tenant_id=%s"]
        params: list = [tenant_id]
        if filters.cycle_id:
            where.append("cycle_id=%s")
            params.append(filters.cycle_id)
        if filters.evaluated_employee_id:
            where.append("evaluated_employee_id=%s")
            params.append(filters.evaluated_employee_id)
        if filters.evaluator_id:
            where.append("evaluator_id=%s")
            params.append(filters.evaluator_id)
        if filters.status:
            where.append("status=%s")
            params.append(filters.status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_INSTANCE_COLUMNS} FROM evaluation_instances "
                f"WHERE {' AND '.join(where)} ORDER BY created_at DESC",
                tuple(params),
            )
            return [_row_to_instance(r) for r in fetchall(cur)]

    def list_completed_for_employee(
        self, tenant_id: str, employee_id: str, *, limit: int
    ) -> Sequence[EvaluationInstance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_INSTANCE_COLUMNS} FROM evaluation_instances
                WHERE tenant_id=%s AND evaluated_employee_id=%s AND status=%s
                ORDER BY completed_at DESC
                LIMIT %s
                """,
                (tenant_id, employee_id, EvaluationStatus.COMPLETED.value, int(limit)),
            )
            return [_row_to_instance(r) for r in fetchall(cur)]

    def save(self, instance: EvaluationInstance) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE evaluation_instances SET
                    tenant_id=%s, cycle_id=%s, template_id=%s, evaluated_employee_id=%s,
                    evaluated_employee_name=%s, evaluated_employee_department=%s, evaluated_employee_position=%s,
                    evaluator_id=%s, evaluator_name=%s, evaluator_role=%s,
                    competency_ratings=%s, objective_ratings=%s, general_answers=%s,
                    overall_rating=%s, overall_comment=%s, status=%s, submitted_at=%s, submitted_by=%s,
                    manager_review=%s, hr_review=%s, started_at=%s, completed_at=%s, due_date=%s
                WHERE tenant_id=%s AND evaluation_id=%s
                """,
                (*_instance_params(instance), instance.tenant_id, instance.evaluation_id),
            )

    def insert_many(self, instances: Sequence[EvaluationInstance]) -> None:
        if not instances:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO evaluation_instances(
                    evaluation_id, tenant_id, cycle_id, template_id, evaluated_employee_id,
                    evaluated_employee_name, evaluated_employee_department, evaluated_employee_position,
                    evaluator_id, evaluator_name, evaluator_role,
                    competency_ratings, objective_ratings, general_answers,
                    overall_rating, overall_comment, status, submitted_at, submitted_by,
                    manager_review, hr_review, started_at, completed_at, due_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                [(e.evaluation_id, *_instance_params(e)) for e in instances],
            )

    def count_for_cycle(self, tenant_id: str, cycle_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM evaluation_instances WHERE tenant_id=%s AND cycle_id=%s",
                (tenant_id, cycle_id),
            )
            return int(fetchone(cur)["cnt"])


_TEMPLATE_COLUMNS = (
    "template_id, tenant_id, name, description, type, rating_scale, competencies, objectives, "
    "general_questions, config, applicable_to, is_active, created_by, created_by_name, created_at, updated_at"
)


def _row_to_template(r: dict) -> EvaluationTemplate:
    return EvaluationTemplate(
        template_id=str(r["template_id"]),
        tenant_id=str(r["tenant_id"]),
        name=r["name"],
        description=r.get("description") or "",
        type=TemplateType(r.get("type") or TemplateType.ANNUAL.value),
        rating_scale=RatingScale.from_dict(from_json(r.get("rating_scale"), {})),
        competencies=tuple(Competency.from_dict(x) for x in from_json(r.get("competencies"), [])),
        objectives=tuple(Objective.from_dict(x) for x in from_json(r.get("objectives"), [])),
        general_questions=tuple(GeneralQuestion.from_dict(x) for x in from_json(r.get("general_questions"), [])),
        config=TemplateConfig.from_dict(from_json(r.get("config"), {})),
        applicable_to=ApplicableTo.from_dict(from_json(r.get("applicable_to"), {})),
        is_active=bool(r.get("is_active", 1)),
        created_by=r.get("created_by"),
        created_by_name=r.get("created_by_name"),
        created_at=as_utc(r.get("created_at")),
        updated_at=as_utc(r.get("updated_at")),
    )


def _template_params(t: EvaluationTemplate) -> tuple:
    return (
        t.name,
        t.description,
        t.type.value,
        to_json(t.rating_scale.to_dict()),
        to_json([c.to_dict() for c in t.competencies]),
        to_json([o.to_dict() for o in t.objectives]),
        to_json([q.to_dict() for q in t.general_questions]),
        to_json(t.config.to_dict()),
        to_json(t.applicable_to.to_dict()),
        1 if t.is_active else 0,
        to_db_datetime(t.updated_at),
    )


class MySQLEvaluationTemplateRepository(EvaluationTemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, tenant_id: str, template_id: str) -> Optional[EvaluationTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM evaluation_templates WHERE tenant_id=%s AND template_id=%s",
                (tenant_id, template_id),
            )
            r = fetchone(cur)
            return _row_to_template(r) if r else None

    def find(
        self, tenant_id: str, *, type: Optional[TemplateType] = None, is_active: Optional[bool] = None
    ) -> Sequence[EvaluationTemplate]:
        where = ["tenant_id=%s"]
        params: list = [tenant_id]
        if type is not None:
            where.append("type=%s")
            params.append(type.value)
        if is_active is not None:
            where.append("is_active=%s")
            params.append(1 if is_active else 0)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TEMPLATE_COLUMNS} FROM evaluation_templates "
                f"WHERE {' AND '.join(where)} ORDER BY created_at DESC",
                tuple(params),
            )
            return [_row_to_template(r) for r in fetchall(cur)]

    def create(self, template: EvaluationTemplate) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO evaluation_templates(
                    name, description, type, rating_scale, competencies, objectives, general_questions,
                    config, applicable_to, is_active, updated_at,
                    template_id, tenant_id, created_by, created_by_name, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    *_template_params(template),
                    template.template_id,
                    template.tenant_id,
                    template.created_by,
                    template.created_by_name,
                    to_db_datetime(template.created_at),
                ),
            )

    def save(self, template: EvaluationTemplate) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE evaluation_templates SET
                    name=%s, description=%s, type=%s, rating_scale=%s, competencies=%s, objectives=%s,
                    general_questions=%s, config=%s, applicable_to=%s, is_active=%s, updated_at=%s
                WHERE tenant_id=%s AND template_id=%s
                """,
                (*_template_params(template), template.tenant_id, template.template_id),
            )

    def delete(self, tenant_id: str, template_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM evaluation_templates WHERE tenant_id=%s AND template_id=%s",
                (tenant_id, template_id),
            )
            return cur.rowcount > 0


_CYCLE_COLUMNS = (
    "cycle_id, tenant_id, name, description, template_id, start_date, end_date, evaluation_deadline, "
    "status, launched_at, completed_at, stats, created_by, created_by_name, created_at, updated_at"
)


def _row_to_cycle(r: dict) -> EvaluationCycle:
    return EvaluationCycle(
        cycle_id=str(r["cycle_id"]),
        tenant_id=str(r["tenant_id"]),
        name=r["name"],
        description=r.get("description") or "",
        template_id=str(r["template_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        evaluation_deadline=as_utc(r["evaluation_deadline"]),
        status=CycleStatus(r["status"]),
        launched_at=as_utc(r.get("launched_at")),
        completed_at=as_utc(r.get("completed_at")),
        stats=CycleStats.from_dict(from_json(r.get("stats"), {})),
        created_by=r.get("created_by"),
        created_by_name=r.get("created_by_name"),
        created_at=as_utc(r.get("created_at")),
        updated_at=as_utc(r.get("updated_at")),
    )


def _cycle_params(c: EvaluationCycle) -> tuple:
    return (
        c.name,
        c.description,
        c.template_id,
        c.start_date,
        c.end_date,
        to_db_datetime(c.evaluation_deadline),
        c.status.value,
        to_db_datetime(c.launched_at),
        to_db_datetime(c.completed_at),
        to_json(c.stats.to_dict()),
        to_db_datetime(c.updated_at),
    )


class MySQLEvaluationCycleRepository(EvaluationCycleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, tenant_id: str, cycle_id: str) -> Optional[EvaluationCycle]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_CYCLE_COLUMNS} FROM evaluation_cycles WHERE tenant_id=%s AND cycle_id=%s",
                (tenant_id, cycle_id),
            )
            r = fetchone(cur)
            return _row_to_cycle(r) if r else None

    def list_by_ids(self, tenant_id: str, cycle_ids: Sequence[str]) -> Sequence[EvaluationCycle]:
        ids = list(cycle_ids)
        if not ids:
            return []
        placeholders = ", ".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_CYCLE_COLUMNS} FROM evaluation_cycles WHERE tenant_id=%s AND cycle_id IN ({placeholders})",
                (tenant_id, *ids),
            )
            return [_row_to_cycle(r) for r in fetchall(cur)]

    def find(self, tenant_id: str, *, status: Optional[CycleStatus] = None) -> Sequence[EvaluationCycle]:
        where = ["tenant_id=%s"]
        params: list = [tenant_id]
        if status is not None:
            where.append("status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_CYCLE_COLUMNS} FROM evaluation_cycles "
                f"WHERE {' AND '.join(where)} ORDER BY created_at DESC",
                tuple(params),
            )
            return [_row_to_cycle(r) for r in fetchall(cur)]

    def list_completed(self, tenant_id: str, *, limit: int) -> Sequence[EvaluationCycle]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_CYCLE_COLUMNS} FROM evaluation_cycles
                WHERE tenant_id=%s AND status=%s
                ORDER BY end_date DESC
                LIMIT %s
                """,
                (tenant_id, CycleStatus.COMPLETED.value, int(limit)),
            )
            return [_row_to_cycle(r) for r in fetchall(cur)]

    def count_for_template(self, tenant_id: str, template_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM evaluation_cycles WHERE tenant_id=%s AND template_id=%s",
                (tenant_id, template_id),
            )
            return int(fetchone(cur)["cnt"])

    def create(self, cycle: EvaluationCycle) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO evaluation_cycles(
                    name, description, template_id, start_date, end_date, evaluation_deadline,
                    status, launched_at, completed_at, stats, updated_at,
                    cycle_id, tenant_id, created_by, created_by_name, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    *_cycle_params(cycle),
                    cycle.cycle_id,
                    cycle.tenant_id,
                    cycle.created_by,
                    cycle.created_by_name,
                    to_db_datetime(cycle.created_at),
                ),
            )

    def save(self, cycle: EvaluationCycle) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE evaluation_cycles
                SET name=%s, description=%s, template_id=%s, start_date=%s, end_date=%s,
                    evaluation_deadline=%s, status=%s, launched_at=%s, completed_at=%s, stats=%s, updated_at=%s
                WHERE tenant_id=%s AND cycle_id=%s
                """,
                (*_cycle_params(cycle), cycle.tenant_id, cycle.cycle_id),
            )

    def delete(self, tenant_id: str, cycle_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM evaluation_cycles WHERE tenant_id=%s AND cycle_id=%s", (tenant_id, cycle_id))
            return cur.rowcount > 0
