from core.check_permission import CheckRolePermission
from core.mapper import ORMMapper
from models.enums import UserRole
from repos.auth_repo import AuthRepo
from schemas.schema import RequestContext, UserBriefOut


class UserService:
    def __init__(self, db):
        self.repo: AuthRepo = AuthRepo(db)
        self.mapper: ORMMapper = ORMMapper()
        self.permission: CheckRolePermission = CheckRolePermission()

    async def list_tenants(self, ctx: RequestContext) -> list[UserBriefOut]:
        await self.permission.check_owner(ctx)
        tenants = await self.repo.list_by_role(UserRole.TENANT)
        return self.mapper.many(tenants, UserBriefOut)
