import pytest
from sqlalchemy import func, select

from feedback.models import MessageReadStatus, Program, Submission, SubmissionMessage, utcnow
from feedback.services.visibility import Viewer
from feedback.store import listing, messages, receipts, threads, unread
from feedback.store.exceptions import (
    AccessDenied,
    AlreadyDeleted,
    MessageNotFound,
    ProgramNotFound,
    SubmissionNotFound,
)


async def _thread(db, program, owner, title="Form check"):
    sub = await threads.create_thread(db, program.id, owner.id, title)
    await db.commit()
    return sub


async def _post(db, sub, author, text="hi", url=None):
    msg = await messages.append_message(db, sub.id, author.id, text, url)
    await db.commit()
    return msg


# ---------------------------
# threads
# ---------------------------
async def test_create_thread_sets_timestamps(db, program, student):
    sub = await _thread(db, program, student)
    assert sub.id is not None
    assert sub.user_id == student.id
    assert sub.created_at is not None
    assert sub.updated_at is not None
    assert sub.deleted_at is None


async def test_create_thread_unknown_program(db, student):
    with pytest.raises(ProgramNotFound):
        await threads.create_thread(db, 9999, student.id, "x")


async def test_create_thread_deleted_program(db, student):
    p = Program(name="Retired", deleted_at=utcnow())
    db.add(p)
    await db.commit()
    with pytest.raises(ProgramNotFound):
        await threads.create_thread(db, p.id, student.id, "x")


async def test_get_thread_access_rules(db, program, student, other_student, admin):
    sub = await _thread(db, program, student)
    assert (await threads.get_thread(db, sub.id, Viewer(student.id))).id == sub.id
    assert (await threads.get_thread(db, sub.id, Viewer(admin.id, True))).id == sub.id
    with pytest.raises(AccessDenied):
        await threads.get_thread(db, sub.id, Viewer(other_student.id))
    with pytest.raises(SubmissionNotFound):
        await threads.get_thread(db, sub.id + 100, Viewer(admin.id, True))


async def test_soft_delete_is_one_way(db, program, student, admin):
    sub = await _thread(db, program, student)
    await threads.soft_delete_thread(db, sub.id)
    await db.commit()

    with pytest.raises(SubmissionNotFound):
        await threads.get_thread(db, sub.id, Viewer(admin.id, True))
    with pytest.raises(AlreadyDeleted):
        await threads.soft_delete_thread(db, sub.id)

    kept = await threads.get_thread_including_deleted(db, sub.id)
    assert kept is not None and kept.deleted_at is not None


async def test_soft_delete_missing(db):
    with pytest.raises(SubmissionNotFound):
        await threads.soft_delete_thread(db, 12345)


# ---------------------------
# messages
# ---------------------------
async def test_messages_ordered_and_decorated(db, program, student, admin):
    sub = await _thread(db, program, student)
    m1 = await _post(db, sub, student, "first")
    m2 = await _post(db, sub, admin, "second")
    m3 = await _post(db, sub, student, "third")

    rows = await messages.list_messages(db, sub.id, student.id)
    assert [r.id for r in rows] == [m1.id, m2.id, m3.id]
    assert [r.author_role for r in rows] == ["student", "admin", "student"]
    assert rows[1].author_name == "Coach Admin"
    assert rows[1].author_email == "coach@test.com"
    # own messages count as read; the coach's reply does not until marked
    assert [r.is_read for r in rows] == [True, False, True]


async def test_new_message_does_not_reorder_history(db, program, student, admin):
    sub = await _thread(db, program, student)
    for i in range(4):
        await _post(db, sub, admin if i % 2 else student, f"m{i}")
    before = [r.id for r in await messages.list_messages(db, sub.id, student.id)]
    await _post(db, sub, admin, "late")
    after = [r.id for r in await messages.list_messages(db, sub.id, student.id)]
    assert after[: len(before)] == before
    stamps = [r.created_at for r in await messages.list_messages(db, sub.id, student.id)]
    assert stamps == sorted(stamps)


async def test_messages_survive_soft_delete(db, program, student, admin):
    sub = await _thread(db, program, student)
    await _post(db, sub, student, "a")
    await _post(db, sub, admin, "b")
    await threads.soft_delete_thread(db, sub.id)
    await db.commit()
    kept = await messages.list_messages_including_deleted(db, sub.id)
    assert [m.content for m in kept] == ["a", "b"]


# ---------------------------
# receipts
# ---------------------------
async def test_mark_read_idempotent(db, program, student, admin):
    sub = await _thread(db, program, student)
    msg = await _post(db, sub, admin, "look at your elbow")

    assert await receipts.mark_read(db, student.id, msg.id) is True
    await db.commit()
    first = (await db.execute(select(MessageReadStatus.read_at))).scalar_one()

    assert await receipts.mark_read(db, student.id, msg.id) is False
    await db.commit()
    rows = (await db.execute(select(MessageReadStatus.read_at))).scalars().all()
    assert rows == [first]


async def test_mark_read_unknown_message(db, student):
    with pytest.raises(MessageNotFound):
        await receipts.mark_read(db, student.id, 424242)


async def test_mark_thread_read_skips_own_and_already_read(db, program, student, admin):
    sub = await _thread(db, program, student)
    await _post(db, sub, student, "mine")
    a1 = await _post(db, sub, admin, "reply 1")
    await _post(db, sub, admin, "reply 2")
    await receipts.mark_read(db, student.id, a1.id)
    await db.commit()

    assert await receipts.mark_thread_read(db, student.id, sub.id) == 1
    await db.commit()
    assert await receipts.mark_thread_read(db, student.id, sub.id) == 0
    total = (await db.execute(select(func.count()).select_from(MessageReadStatus))).scalar_one()
    assert total == 2


# ---------------------------
# unread aggregation
# ---------------------------
async def test_unread_counts_scoped_to_owner(db, program, second_program, student, other_student, admin):
    mine = await _thread(db, program, student)
    theirs = await _thread(db, second_program, other_student)
    await _post(db, mine, admin, "to student")
    await _post(db, theirs, admin, "to other 1")
    await _post(db, theirs, admin, "to other 2")

    counts = await unread.get_unread_counts(db, Viewer(student.id))
    assert counts.total == 1
    assert counts.by_submission == {mine.id: 1}
    assert counts.by_program == {program.id: 1}

    other = await unread.get_unread_counts(db, Viewer(other_student.id))
    assert other.by_submission == {theirs.id: 2}


async def test_unread_counts_additive_for_admin(db, program, second_program, student, other_student, admin):
    t1 = await _thread(db, program, student)
    t2 = await _thread(db, program, other_student)
    t3 = await _thread(db, second_program, student)
    for sub, n in ((t1, 2), (t2, 1), (t3, 3)):
        for i in range(n):
            await _post(db, sub, student if sub.user_id == student.id else other_student, f"q{i}")
    await _post(db, t1, admin, "admin note")

    counts = await unread.get_unread_counts(db, Viewer(admin.id, True))
    assert counts.total == 6
    assert sum(counts.by_submission.values()) == counts.total
    assert sum(counts.by_program.values()) == counts.total
    assert counts.by_program == {program.id: 3, second_program.id: 3}

    filtered = await unread.get_unread_counts(db, Viewer(admin.id, True), program_id=second_program.id)
    assert filtered.total == 3
    assert filtered.by_submission == {t3.id: 3}


async def test_self_authored_never_unread(db, program, student):
    sub = await _thread(db, program, student)
    msg = await _post(db, sub, student, "my question")
    assert (await unread.get_unread_counts(db, Viewer(student.id))).total == 0
    await receipts.mark_read(db, student.id, msg.id)
    await db.commit()
    assert (await unread.get_unread_counts(db, Viewer(student.id))).total == 0


# ---------------------------
# listing
# ---------------------------
async def test_list_threads_projection(db, program, student, admin):
    sub = await _thread(db, program, student)
    await _post(db, sub, student, "question")
    await _post(db, sub, admin, "Looks good, try wider stance")

    [item] = await listing.list_threads(db, Viewer(student.id))
    assert item.id == sub.id
    assert item.program_name == "Wing Chun Basics"
    assert item.student_name == "Sam Student"
    assert item.student_email == "student@test.com"
    assert item.message_count == 2
    assert item.unread_count == 1
    assert item.last_message_text == "Looks good, try wider stance"
    assert item.last_message_from == "Coach Admin"
    assert item.last_message_author_id == admin.id


async def test_list_threads_empty_thread_defaults(db, program, student):
    await _thread(db, program, student)
    [item] = await listing.list_threads(db, Viewer(student.id))
    assert item.message_count == 0
    assert item.unread_count == 0
    assert item.last_message_text == ""
    assert item.last_message_from == "Sam Student"
    assert item.last_message_author_id is None
    assert item.last_message_at == item.created_at
    assert item.last_activity_at == item.created_at


async def test_list_threads_orders_by_activity(db, program, student, admin):
    older = await _thread(db, program, student, "older")
    newer = await _thread(db, program, student, "newer")
    ids = [i.id for i in await listing.list_threads(db, Viewer(student.id))]
    assert ids == [newer.id, older.id]

    await _post(db, older, admin, "bump")
    ids = [i.id for i in await listing.list_threads(db, Viewer(student.id))]
    assert ids == [older.id, newer.id]


async def test_list_threads_visibility_and_filters(
    db, program, second_program, student, other_student, admin
):
    a = await _thread(db, program, student)
    b = await _thread(db, program, other_student)
    c = await _thread(db, second_program, student)

    assert {i.id for i in await listing.list_threads(db, Viewer(student.id))} == {a.id, c.id}
    assert {i.id for i in await listing.list_threads(db, Viewer(admin.id, True))} == {a.id, b.id, c.id}
    assert {
        i.id for i in await listing.list_threads(db, Viewer(admin.id, True), program_id=program.id)
    } == {a.id, b.id}

    page = await listing.list_threads(db, Viewer(admin.id, True), limit=2, offset=0)
    rest = await listing.list_threads(db, Viewer(admin.id, True), limit=2, offset=2)
    assert len(page) == 2 and len(rest) == 1
    assert {i.id for i in page + rest} == {a.id, b.id, c.id}

    await threads.soft_delete_thread(db, a.id)
    await db.commit()
    assert {i.id for i in await listing.list_threads(db, Viewer(student.id))} == {c.id}


# ---------------------------
# ordering ties
# ---------------------------
async def test_messages_sharing_a_timestamp_keep_insert_order(db, program, student, admin):
    sub = await _thread(db, program, student)
    stamp = utcnow()
    rows = [
        SubmissionMessage(submission_id=sub.id, user_id=uid, content=text, created_at=stamp)
        for uid, text in ((student.id, "one"), (admin.id, "two"), (student.id, "three"))
    ]
    for row in rows:
        db.add(row)
        await db.flush()
    await db.commit()

    listed = await messages.list_messages(db, sub.id, student.id)
    assert [m.id for m in listed] == sorted(r.id for r in rows)
    assert [m.content for m in listed] == ["one", "two", "three"]

    [item] = await listing.list_threads(db, Viewer(student.id))
    assert item.last_message_text == listed[-1].content
    assert item.last_message_author_id == listed[-1].user_id


async def test_threads_with_equal_activity_newest_id_first(db, program, student):
    stamp = utcnow()
    subs = [
        Submission(program_id=program.id, user_id=student.id, title=f"t{i}", created_at=stamp, updated_at=stamp)
        for i in range(3)
    ]
    for sub in subs:
        db.add(sub)
        await db.flush()
    await db.commit()

    items = await listing.list_threads(db, Viewer(student.id))
    assert [i.id for i in items] == sorted((s.id for s in subs), reverse=True)
    assert len({i.last_activity_at for i in items}) == 1
