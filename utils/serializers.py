"""JSON shapes shared by several blueprints."""


def _iso(value):
    return value.isoformat() if value else None


def service_json(s):
    return {
        "id": s.id,
        "name": s.name,
        "description": s.description,
        "duration": s.duration,
        "is_active": s.is_active,
        "created_at": _iso(s.created_at),
        "updated_at": _iso(s.updated_at),
    }


def slot_json(t, available_spots=None):
    out = {
        "id": t.id,
        "service_id": t.service_id,
        "start_time": _iso(t.start_time),
        "end_time": _iso(t.end_time),
        "capacity": t.capacity,
        "is_available": t.is_available,
    }
    if available_spots is not None:
        out["available_spots"] = available_spots
    return out


def queue_entry_json(e):
    return {
        "id": e.id,
        "reservation_id": e.reservation_id,
        "position": e.position,
        "status": e.status,
        "check_in_time": _iso(e.check_in_time),
        "estimated_start_time": _iso(e.estimated_start_time),
        "actual_start_time": _iso(e.actual_start_time),
        "completed_time": _iso(e.completed_time),
        "created_at": _iso(e.created_at),
    }


def reservation_json(r, detailed=False):
    out = {
        "id": r.id,
        "user_id": r.user_id,
        "service_id": r.service_id,
        "time_slot_id": r.time_slot_id,
        "status": r.status,
        "notes": r.notes,
        "created_at": _iso(r.created_at),
        "updated_at": _iso(r.updated_at),
    }
    if detailed:
        s, t = r.service, r.time_slot
        out["service"] = {
            "id": s.id,
            "name": s.name,
            "description": s.description,
            "duration": s.duration,
        }
        out["time_slot"] = {
            "id": t.id,
            "start_time": _iso(t.start_time),
            "end_time": _iso(t.end_time),
        }
        out["queue_entry"] = queue_entry_json(r.queue_entry) if r.queue_entry else None
    return out


def queue_row_json(entry, reservation, user, service, slot):
    out = queue_entry_json(entry)
    out.update(
        reservation={
            "id": reservation.id,
            "notes": reservation.notes,
            "status": reservation.status,
        },
        user={
            "id": user.id,
            "name": user.full_name,
            "email": user.email,
        },
        service={
            "id": service.id,
            "name": service.name,
            "duration": service.duration,
        },
        time_slot={
            "id": slot.id,
            "start_time": _iso(slot.start_time),
            "end_time": _iso(slot.end_time),
        },
    )
    return out
