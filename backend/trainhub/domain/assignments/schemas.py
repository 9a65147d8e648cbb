from pydantic import BaseModel


class AssignProgramRequest(BaseModel):
    employee_id: int
    program_id: int


class AssignmentResult(BaseModel):
    employee_id: int
    program_id: int
    modules_assigned: int
