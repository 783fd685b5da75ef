"""
Roles and what each of them may do.

Every access decision in the routes goes through ``has_capability``; route
code never compares role strings directly.
"""
from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    FACILITATOR = "facilitator"
    STUDENT = "student"

    @classmethod
    def parse(cls, value):
        """Map a stored role string to a Role; anything unknown is treated as a student."""
        if isinstance(value, Role):
            return value
        raw = (value or "").strip().lower()
        for role in cls:
            if role.value == raw:
                return role
        return cls.STUDENT

    @property
    def label(self):
        return " ".join(w.capitalize() for w in self.value.split("_"))


class Capability(str, Enum):
    VIEW_SUPER_ADMIN_DASHBOARD = "view_super_admin_dashboard"
    VIEW_ADMIN_DASHBOARD = "view_admin_dashboard"
    VIEW_FACILITATOR_DASHBOARD = "view_facilitator_dashboard"
    VIEW_STUDENT_DASHBOARD = "view_student_dashboard"
    MANAGE_DEPARTMENTS = "manage_departments"
    MANAGE_USERS = "manage_users"
    VIEW_ROLES = "view_roles"
    VIEW_FACILITATORS = "view_facilitators"
    VIEW_STUDENTS = "view_students"
    VIEW_PORTION_OVERVIEW = "view_portion_overview"
    MARK_PORTIONS = "mark_portions"
    MANAGE_ASSESSMENTS = "manage_assessments"
    VERIFY_SUBMISSIONS = "verify_submissions"
    SUBMIT_WORK = "submit_work"
    VIEW_ASSESSMENTS = "view_assessments"
    VIEW_PROJECTS = "view_projects"
    VIEW_LEADERBOARDS = "view_leaderboards"
    VIEW_ANNOUNCEMENTS = "view_announcements"
    MANAGE_ANNOUNCEMENTS = "manage_announcements"
    SEARCH = "search"


_ALL = frozenset(Role)

CAPABILITIES = {
    Capability.VIEW_SUPER_ADMIN_DASHBOARD: frozenset({Role.SUPER_ADMIN}),
    Capability.MANAGE_DEPARTMENTS: frozenset({Role.SUPER_ADMIN}),
    Capability.VIEW_ROLES: frozenset({Role.SUPER_ADMIN}),
    Capability.VIEW_ADMIN_DASHBOARD: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.MANAGE_USERS: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.VIEW_FACILITATORS: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.VIEW_STUDENTS: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.VIEW_PORTION_OVERVIEW: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.MANAGE_ANNOUNCEMENTS: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.SEARCH: frozenset({Role.SUPER_ADMIN, Role.ADMIN}),
    Capability.VIEW_FACILITATOR_DASHBOARD: frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.FACILITATOR}),
    Capability.MARK_PORTIONS: frozenset({Role.SUPER_ADMIN, Role.FACILITATOR}),
    Capability.MANAGE_ASSESSMENTS: frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.FACILITATOR}),
    Capability.VERIFY_SUBMISSIONS: frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.FACILITATOR}),
    Capability.SUBMIT_WORK: frozenset({Role.STUDENT}),
    Capability.VIEW_STUDENT_DASHBOARD: _ALL,
    Capability.VIEW_ASSESSMENTS: _ALL,
    Capability.VIEW_PROJECTS: _ALL,
    Capability.VIEW_LEADERBOARDS: _ALL,
    Capability.VIEW_ANNOUNCEMENTS: _ALL,
}

# Announcement target_audience value that addresses each role ("all" addresses everyone)
AUDIENCE = {
    Role.SUPER_ADMIN: "admins",
    Role.ADMIN: "admins",
    Role.FACILITATOR: "facilitators",
    Role.STUDENT: "students",
}

# Roles an account holding the key role may create
CREATABLE_ROLES = {
    Role.SUPER_ADMIN: frozenset(Role),
    Role.ADMIN: frozenset({Role.FACILITATOR, Role.STUDENT}),
}

# Landing dashboard per role
HOME_DASHBOARD = {
    Role.SUPER_ADMIN: "/admin/super-summary",
    Role.ADMIN: "/admin/summary",
    Role.FACILITATOR: "/facilitator/dashboard",
    Role.STUDENT: "/student/dashboard",
}

ROLE_DESCRIPTIONS = {
    Role.SUPER_ADMIN: (
        "Full system access with all permissions",
        ["Manage all users", "Manage departments", "View all dashboards", "Manage roles",
         "System settings", "View reports", "Manage all portions"],
    ),
    Role.ADMIN: (
        "Department administration and progress monitoring",
        ["Manage facilitators and students", "View admin dashboard", "View facilitator progress",
         "View portion overview", "Verify submissions", "Post announcements"],
    ),
    Role.FACILITATOR: (
        "Teaching staff with portion management",
        ["Manage own portions", "Manage assessments", "View own progress",
         "Mark portions complete", "Manage projects", "Verify submissions"],
    ),
    Role.STUDENT: (
        "Student access to view academic progress",
        ["View subjects", "View portion progress", "Submit assessment papers",
         "Submit projects", "View leaderboards", "View announcements"],
    ),
}


def has_capability(role, capability):
    return Role.parse(role) in CAPABILITIES.get(Capability(capability), frozenset())


def capabilities_for(role):
    r = Role.parse(role)
    return sorted(c.value for c, roles in CAPABILITIES.items() if r in roles)


def can_create(creator_role, target_role):
    return Role.parse(target_role) in CREATABLE_ROLES.get(Role.parse(creator_role), frozenset())
