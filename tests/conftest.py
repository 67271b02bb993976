# tests/conftest.py

import pytest

from plantext.engine.model import (
    AreaDetails,
    ComponentDetails,
    Effort,
    Estimation,
    JobDetails,
    Milestone,
    NodeType,
    PostEstimateNotes,
    Project,
    ProjectInfo,
    Schedule,
    Session,
    StructureNode,
    Task,
)


@pytest.fixture
def job_task() -> Task:
    return Task(
        id="1.1.2",
        name="Login form - validation",
        details=JobDetails(
            context_why="Users cannot sign in.\n\nSecond paragraph.",
            outcome_dod="- A\n- B",
            scope_in="- Email login",
            scope_out="- SSO",
            approach="- Draft\n  - nested step",
            completed=True,
        ),
        estimation=Estimation(
            work_type="new_work",
            assumptions="- API exists",
            effort=Effort(
                method="three_point",
                base_hours=8,
                buffer_percent=25,
                buffer_reason="unknown API",
                total_hours=10,
            ),
            confidence="med",
            schedule=Schedule(
                start_date="2024-03-01",
                target_finish="2024-03-08",
                milestones=[Milestone("Beta", "2024-03-05"), Milestone("Release", "")],
            ),
            post_estimate_notes=PostEstimateNotes(could_be_bigger="- Legacy browsers"),
        ),
        notes="Remember the captcha.",
        tags=["auth", "ui"],
        custom={"review_notes": "Looks fine"},
    )


@pytest.fixture
def project(job_task: Task) -> Project:
    structure = {
        "1": StructureNode(
            id="1",
            type=NodeType.AREA,
            children={
                "1.1": StructureNode(
                    id="1.1",
                    type=NodeType.COMPONENT,
                    children={"1.1.2": StructureNode(id="1.1.2", type=NodeType.JOB)},
                ),
            },
        ),
    }
    area = Task(id="1", name="Auth", details=AreaDetails(vision_purpose="Secure access"))
    component = Task(
        id="1.1",
        name="Login",
        details=ComponentDetails(purpose="Sign-in page", capabilities="- Email\n- Password"),
    )
    return Project(
        info=ProjectInfo(id="p1", name="demo"),
        structure=structure,
        task_list={"1": area, "1.1": component, "1.1.2": job_task},
        time_log=[
            Session(
                start_timestamp="2024-03-01T09:00:00Z",
                end_timestamp="2024-03-01T10:30:00Z",
                tasks=["1.1.2"],
                session_type="coding",
                deliverables="- Form skeleton",
            ),
        ],
        tags=["q1"],
        notes="Project notes",
    )

