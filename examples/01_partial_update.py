"""
Example 01: Partial Update

This example merges the non-None fields of a DTO into an existing entity,
resolving course ids into course objects through a property handler.
"""

from dataclasses import dataclass, field
from typing import Annotated, Optional

from patch_merge import Dependency, Transient, UpdateProperty, create


@dataclass(frozen=True)
class Course:
    id: int
    title: str


class CourseService:
    def __init__(self):
        self._courses = {
            1: Course(1, "Algebra"),
            2: Course(2, "Biology"),
            3: Course(3, "Chemistry"),
        }

    def find_by_id(self, course_id):
        return self._courses.get(course_id)


class CourseIdHandler:
    course_service: Annotated[CourseService, Dependency]

    def process(self, course_ids):
        courses = (self.course_service.find_by_id(course_id) for course_id in course_ids)
        return [course for course in courses if course is not None]


@dataclass
class Student:
    name: str
    email: str
    enrolled_courses: list = field(default_factory=list)
    password: str = "hunter2"


@dataclass
class StudentDTO:
    name: Optional[str] = None
    email: Optional[str] = None
    course_ids: Annotated[
        Optional[list],
        UpdateProperty(handler=CourseIdHandler, target_property="enrolled_courses"),
    ] = None
    password: Annotated[Optional[str], Transient] = None


def main():
    engine = create()

    student = Student(name="John", email="old@x.com")
    print(f"Before: {student}\n")

    dto = StudentDTO(email="new@x.com", course_ids=[1, 3], password="ignored")
    engine.update(student, dto, {CourseService: CourseService()})

    # name was None in the DTO and password is transient: both untouched
    print(f"After:  {student}\n")


if __name__ == "__main__":
    main()
