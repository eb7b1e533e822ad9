"""Member lookup and user-to-member linking."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.models.member import Member
from treasury.models.user_member_link import UserMemberLink
from treasury.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class MemberService:
    """Member records of an organization."""

    def __init__(self, session: AsyncSession):
        """Initialize with database session.

        Args:
            session: AsyncSession for database operations
        """
        self.session = session

    async def create_member(
        self,
        organization_id: str,
        full_name: str,
        email: str | None = None,
        phone: str | None = None,
        is_active: bool = True,
    ) -> Member:
        """Create a member in an organization.

        Raises:
            ValidationError: If full_name is blank
        """
        full_name = (full_name or "").strip()
        if not full_name:
            raise ValidationError("full_name is required", "full_name")

        member = Member(
            organization_id=organization_id,
            full_name=full_name,
            email=email,
            phone=phone,
            is_active=is_active,
        )
        self.session.add(member)
        await self.session.commit()
        await self.session.refresh(member)
        logger.info(f"Created member {member.id} ({full_name}) in org {organization_id}")
        return member

    async def get_member(self, member_id: int, organization_id: str | None = None) -> Member:
        """Get a member, optionally checking that it belongs to an organization.

        Raises:
            NotFoundError: If the member does not exist (or is in another organization)
        """
        member = await self.session.get(Member, member_id)
        if member is None or (
            organization_id is not None and member.organization_id != organization_id
        ):
            raise NotFoundError(f"Member {member_id} not found", "member_id")
        return member

    async def list_members(self, organization_id: str, active_only: bool = True) -> list[Member]:
        """List members ordered by full name."""
        stmt = select(Member).where(Member.organization_id == organization_id)
        if active_only:
            stmt = stmt.where(Member.is_active.is_(True))
        result = await self.session.execute(stmt.order_by(Member.full_name, Member.id))
        return list(result.scalars().all())

    async def link_user(self, user_id: str, organization_id: str, member_id: int) -> UserMemberLink:
        """Link a login user to a member of the organization.

        Raises:
            NotFoundError: If the member is not in the organization
            ConflictError: If the user is already linked in this organization
        """
        await self.get_member(member_id, organization_id)
        existing = await self.get_link(user_id, organization_id)
        if existing is not None:
            raise ConflictError(
                f"User {user_id} is already linked to member {existing.member_id}", "user_id"
            )

        link = UserMemberLink(user_id=user_id, organization_id=organization_id, member_id=member_id)
        self.session.add(link)
        await self.session.commit()
        logger.info(f"Linked user {user_id} to member {member_id} in org {organization_id}")
        return link

    async def get_link(self, user_id: str, organization_id: str) -> UserMemberLink | None:
        """Get the user's member link in an organization, if any."""
        stmt = select(UserMemberLink).where(
            UserMemberLink.user_id == user_id,
            UserMemberLink.organization_id == organization_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


__all__ = ["MemberService"]
