import asyncio

import pytest

from propcare_backend.core.exceptions import (
    InvalidTransition,
    Unauthorized,
    ValidationError,
)
from propcare_backend.modules.assignments import crud as assignment_crud
from propcare_backend.modules.assignments import services
from propcare_backend.modules.assignments.models import (
    AssignmentStatus,
    ResponseDecision,
)
from propcare_backend.modules.maintenance import crud as report_crud
from propcare_backend.modules.maintenance import services as report_services
from propcare_backend.modules.maintenance.models import ReportStatus


async def _assignment_for(session_factory, report_id):
    async with session_factory() as db:
        return await assignment_crud.get_assignment_by_report(db, report_id)


async def test_full_lifecycle_with_one_reassignment(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    helpdesk = cast["helpdesk"]
    first, second = cast["contractor"], cast["other_contractor"]

    async with session_factory() as db:
        assignment = await services.assign(db, helpdesk, report.id, first.contractor_id)
    assert assignment.status == AssignmentStatus.ASSIGNED
    assert assignment.reassignment_count == 1
    assert assignment.assigned_at is not None

    async with session_factory() as db:
        assignment = await services.respond(
            db, first, assignment.id, ResponseDecision.REJECTED, "Fully booked"
        )
    assert assignment.status == AssignmentStatus.REJECTED

    async with session_factory() as db:
        assignment = await services.assign(
            db, helpdesk, report.id, second.contractor_id
        )
    assert assignment.contractor_id == second.contractor_id
    assert assignment.reassignment_count == 2

    async with session_factory() as db:
        assignment = await services.respond(
            db, second, assignment.id, ResponseDecision.ACCEPTED
        )
    assert assignment.status == AssignmentStatus.ACCEPTED
    assert assignment.report.status == ReportStatus.WORKING

    async with session_factory() as db:
        final = await services.submit_final_report(
            db, second, assignment.id, "  Fixed leak  ", appliance_name="Tap"
        )
    assert final.report_text == "Fixed leak"

    async with session_factory() as db:
        done = await assignment_crud.get_assignment_by_id(db, assignment.id)
        assert done.status == AssignmentStatus.COMPLETED
        assert done.report.status == ReportStatus.FIXED
        assert await assignment_crud.count_final_reports(db, assignment.id) == 1
        responses = await assignment_crud.get_responses(db, assignment.id)
        assert [r.response for r in responses] == [
            ResponseDecision.REJECTED,
            ResponseDecision.ACCEPTED,
        ]
        assert await assignment_crud.get_rejecting_contractor_ids(
            db, assignment.id
        ) == {first.contractor_id}


async def test_concurrent_assigns_count_every_call(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    contractors = [cast["contractor"], cast["other_contractor"]]

    async def assign_once(i):
        async with session_factory() as db:
            return await services.assign(
                db, cast["helpdesk"], report.id, contractors[i % 2].contractor_id
            )

    await asyncio.gather(*(assign_once(i) for i in range(5)))

    assignment = await _assignment_for(session_factory, report.id)
    assert assignment.status == AssignmentStatus.ASSIGNED
    assert assignment.reassignment_count == 5


async def test_first_assign_creates_the_record(session_factory, world, cast):
    report = await world.report(cast["tenant"], cast["property"].id)
    assert await _assignment_for(session_factory, report.id) is None

    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["landlord"], report.id, cast["contractor"].contractor_id
        )
    assert assignment.reassignment_count == 1
    assert assignment.landlord_id == cast["landlord"].id


async def test_respond_from_wrong_state_leaves_status(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    contractor = cast["contractor"]
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, contractor.contractor_id
        )
    async with session_factory() as db:
        await services.respond(db, contractor, assignment.id, ResponseDecision.ACCEPTED)

    async with session_factory() as db:
        with pytest.raises(InvalidTransition):
            await services.respond(
                db, contractor, assignment.id, ResponseDecision.REJECTED, "changed mind"
            )

    current = await _assignment_for(session_factory, report.id)
    assert current.status == AssignmentStatus.ACCEPTED


async def test_only_the_assigned_contractor_may_respond(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, cast["contractor"].contractor_id
        )

    async with session_factory() as db:
        with pytest.raises(Unauthorized):
            await services.respond(
                db, cast["other_contractor"], assignment.id, ResponseDecision.ACCEPTED
            )

    current = await _assignment_for(session_factory, report.id)
    assert current.status == AssignmentStatus.ASSIGNED


async def test_tenant_cannot_assign(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    async with session_factory() as db:
        with pytest.raises(Unauthorized):
            await services.assign(
                db, cast["tenant"], report.id, cast["contractor"].contractor_id
            )


async def test_accepted_job_cannot_be_reassigned(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    contractor = cast["contractor"]
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, contractor.contractor_id
        )
    async with session_factory() as db:
        await services.respond(db, contractor, assignment.id, ResponseDecision.ACCEPTED)

    async with session_factory() as db:
        with pytest.raises(InvalidTransition) as exc:
            await services.assign(
                db,
                cast["helpdesk"],
                report.id,
                cast["other_contractor"].contractor_id,
            )
    assert exc.value.current == "accepted"

    current = await _assignment_for(session_factory, report.id)
    assert current.contractor_id == contractor.contractor_id
    assert current.reassignment_count == 1


async def test_rejected_report_is_not_assignable(session_factory, world, cast):
    report = await world.report(cast["tenant"], cast["property"].id)
    async with session_factory() as db:
        await report_services.reject_report(db, cast["landlord"], report.id)

    async with session_factory() as db:
        with pytest.raises(InvalidTransition):
            await services.assign(
                db, cast["helpdesk"], report.id, cast["contractor"].contractor_id
            )


async def test_empty_final_report_is_rejected_before_any_write(
    session_factory, world, cast
):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    contractor = cast["contractor"]
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, contractor.contractor_id
        )
    async with session_factory() as db:
        await services.respond(db, contractor, assignment.id, ResponseDecision.ACCEPTED)

    async with session_factory() as db:
        with pytest.raises(ValidationError):
            await services.submit_final_report(db, contractor, assignment.id, "   ")

    async with session_factory() as db:
        assert await assignment_crud.count_final_reports(db, assignment.id) == 0
        current = await assignment_crud.get_assignment_by_id(db, assignment.id)
        assert current.status == AssignmentStatus.ACCEPTED


async def test_resubmitting_a_final_report_updates_the_same_row(
    session_factory, world, cast
):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    contractor = cast["contractor"]
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, contractor.contractor_id
        )
    async with session_factory() as db:
        await services.respond(db, contractor, assignment.id, ResponseDecision.ACCEPTED)

    async with session_factory() as db:
        first = await services.submit_final_report(
            db, contractor, assignment.id, "Replaced washer"
        )
    async with session_factory() as db:
        second = await services.submit_final_report(
            db, contractor, assignment.id, "Replaced washer and valve"
        )

    assert first.id == second.id
    async with session_factory() as db:
        assert await assignment_crud.count_final_reports(db, assignment.id) == 1
        stored = await assignment_crud.get_final_report(db, assignment.id)
        assert stored.report_text == "Replaced washer and valve"

    # Submitting the same text again on a completed job is accepted as an update
    for _ in range(2):
        async with session_factory() as db:
            again = await services.submit_final_report(
                db, contractor, assignment.id, "Fixed leak"
            )
        assert again.id == first.id
        assert again.report_text == "Fixed leak"

    async with session_factory() as db:
        assert await assignment_crud.count_final_reports(db, assignment.id) == 1
        current = await assignment_crud.get_assignment_by_id(db, assignment.id)
        assert current.status == AssignmentStatus.COMPLETED
        assert current.report.status == ReportStatus.FIXED


async def _accepted_assignment(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    contractor = cast["contractor"]
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, contractor.contractor_id
        )
    async with session_factory() as db:
        await services.respond(db, contractor, assignment.id, ResponseDecision.ACCEPTED)
    return assignment


async def test_final_report_insert_conflict_updates_the_stored_row(
    session_factory, world, cast, monkeypatch
):
    contractor = cast["contractor"]
    assignment = await _accepted_assignment(session_factory, world, cast)
    async with session_factory() as db:
        first = await services.submit_final_report(
            db, contractor, assignment.id, "Replaced washer"
        )

    # The lookup misses the row another submitter already committed
    real_lookup = assignment_crud.get_final_report
    calls = []

    async def stale_lookup(db, assignment_id, contractor_id=None):
        calls.append(assignment_id)
        if len(calls) == 1:
            return None
        return await real_lookup(db, assignment_id, contractor_id)

    monkeypatch.setattr(assignment_crud, "get_final_report", stale_lookup)
    async with session_factory() as db:
        row, created = await assignment_crud.upsert_final_report(
            db, assignment.id, contractor.contractor_id, "Fixed leak"
        )
        await db.commit()

    assert created is False
    assert row.id == first.id
    assert len(calls) == 2
    async with session_factory() as db:
        assert await assignment_crud.count_final_reports(db, assignment.id) == 1
        stored = await assignment_crud.get_final_report(db, assignment.id)
        assert stored.report_text == "Fixed leak"


async def test_losing_submission_needs_the_job_completed(
    session_factory, world, cast, monkeypatch
):
    contractor = cast["contractor"]
    assignment = await _accepted_assignment(session_factory, world, cast)

    async def lost_completion(db, assignment_id, contractor_id, sources):
        return 0

    monkeypatch.setattr(assignment_crud, "complete_assignment", lost_completion)
    async with session_factory() as db:
        with pytest.raises(InvalidTransition):
            await services.submit_final_report(db, contractor, assignment.id, "Done")

    async with session_factory() as db:
        assert await assignment_crud.count_final_reports(db, assignment.id) == 0
        current = await assignment_crud.get_assignment_by_id(db, assignment.id)
        assert current.status == AssignmentStatus.ACCEPTED


async def test_losing_submission_still_records_its_report(
    session_factory, world, cast, monkeypatch
):
    contractor = cast["contractor"]
    assignment = await _accepted_assignment(session_factory, world, cast)
    real_complete = assignment_crud.complete_assignment

    async def completed_elsewhere(db, assignment_id, contractor_id, sources):
        await real_complete(db, assignment_id, contractor_id, sources)
        return 0

    monkeypatch.setattr(assignment_crud, "complete_assignment", completed_elsewhere)
    async with session_factory() as db:
        final = await services.submit_final_report(
            db, contractor, assignment.id, "Fixed leak"
        )
    assert final.report_text == "Fixed leak"

    async with session_factory() as db:
        assert await assignment_crud.count_final_reports(db, assignment.id) == 1
        current = await assignment_crud.get_assignment_by_id(db, assignment.id)
        assert current.status == AssignmentStatus.COMPLETED


async def test_final_report_requires_an_accepted_job(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    contractor = cast["contractor"]
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, contractor.contractor_id
        )

    async with session_factory() as db:
        with pytest.raises(InvalidTransition):
            await services.submit_final_report(db, contractor, assignment.id, "Done")


async def test_reopen_clears_the_contractor(session_factory, world, cast):
    report = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    async with session_factory() as db:
        assignment = await services.assign(
            db, cast["helpdesk"], report.id, cast["contractor"].contractor_id
        )
    async with session_factory() as db:
        assignment = await services.reopen(db, cast["helpdesk"], assignment.id)

    assert assignment.status == AssignmentStatus.PENDING
    assert assignment.contractor_id is None
    assert assignment.reassignment_count == 1


async def test_contractor_buckets(session_factory, world, cast):
    contractor = cast["contractor"]
    waiting = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    active = await world.approved_report(
        cast["tenant"], cast["landlord"], cast["property"].id
    )
    async with session_factory() as db:
        await services.assign(db, cast["helpdesk"], waiting.id, contractor.contractor_id)
        accepted = await services.assign(
            db, cast["helpdesk"], active.id, contractor.contractor_id
        )
    async with session_factory() as db:
        await services.respond(db, contractor, accepted.id, ResponseDecision.ACCEPTED)

    async with session_factory() as db:
        buckets = await services.contractor_buckets(db, contractor)
    assert [a.report_id for a in buckets.pending] == [waiting.id]
    assert [a.report_id for a in buckets.active] == [active.id]
    assert buckets.history == []


async def test_approved_report_cannot_be_rejected(session_factory, world, cast):
    report = await world.report(cast["tenant"], cast["property"].id)
    async with session_factory() as db:
        await report_services.approve_report(db, cast["landlord"], report.id)

    async with session_factory() as db:
        with pytest.raises(InvalidTransition):
            await report_services.reject_report(db, cast["landlord"], report.id)
        current = await report_crud.get_report_by_id(db, report.id)
        assert current.status == ReportStatus.APPROVED
