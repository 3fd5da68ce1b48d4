"""Push abonelik deposu: kullanıcı -> endpoint listesi (SQLModel)."""
import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, func, select

from app.models import NotificationPreference, PushSubscription

log = logging.getLogger("gymdagboken.push")


class StoreUnavailableError(Exception):
    """Abonelik deposuna ulaşılamadı (listeleme / silme yapılamadı)."""


class SubscriptionStore:
    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> list[PushSubscription]:
        try:
            return list(self.db.exec(select(PushSubscription)).all())
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Abonelikler alınamadı: {e}") from e

    def list(self, user_id: str) -> list[PushSubscription]:
        """Kullanıcının tüm cihaz abonelikleri."""
        try:
            stmt = select(PushSubscription).where(PushSubscription.user_id == user_id)
            return list(self.db.exec(stmt).all())
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Abonelikler alınamadı: {e}") from e

    def delete(self, endpoints: Iterable[str]) -> int:
        """
        Endpoint'leri tek seferde siler. Zaten silinmiş endpoint hata değildir;
        silinen satır sayısı döner.
        """
        wanted = sorted(set(endpoints))
        if not wanted:
            return 0
        try:
            stmt = select(PushSubscription).where(PushSubscription.endpoint.in_(wanted))
            rows = self.db.exec(stmt).all()
            for row in rows:
                self.db.delete(row)
            self.db.commit()
            log.info("Deleted %d push subscription(s) (%d requested)", len(rows), len(wanted))
            return len(rows)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(f"Abonelikler silinemedi: {e}") from e

    def add(
        self, user_id: str, endpoint: str, p256dh: str = "", auth: str = "", _retried: bool = False
    ) -> PushSubscription:
        """
        Endpoint kaydı; aynı endpoint tekrar gelirse güncellenir (tarayıcı başka
        kullanıcıyla giriş yaptıysa sahibi değişir).
        """
        try:
            sub = self.db.exec(
                select(PushSubscription).where(PushSubscription.endpoint == endpoint)
            ).first()
            if sub is None:
                sub = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
            else:
                sub.user_id = user_id
                sub.p256dh = p256dh
                sub.auth = auth
            self.db.add(sub)
            self.db.commit()
            self.db.refresh(sub)
            return sub
        except IntegrityError as e:
            # Eşzamanlı kayıt: diğer istek önce yazdı, onunkini güncelle
            self.db.rollback()
            if _retried:
                raise StoreUnavailableError(f"Abonelik kaydedilemedi: {e}") from e
            return self.add(user_id, endpoint, p256dh, auth, _retried=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(f"Abonelik kaydedilemedi: {e}") from e

    def remove_for_user(self, user_id: str, endpoint: str) -> bool:
        """Kullanıcının kendi endpoint'ini siler (unsubscribe). Yoksa False."""
        try:
            sub = self.db.exec(
                select(PushSubscription).where(
                    PushSubscription.endpoint == endpoint,
                    PushSubscription.user_id == user_id,
                )
            ).first()
            if sub is None:
                return False
            self.db.delete(sub)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(f"Abonelik silinemedi: {e}") from e

    def community_opt_outs(self, user_ids: Iterable[str]) -> set[str]:
        """Topluluk challenge bildirimlerini kapatmış kullanıcılar (kaydı olmayan açık sayılır)."""
        ids = list(set(user_ids))
        if not ids:
            return set()
        try:
            stmt = select(NotificationPreference.user_id).where(
                NotificationPreference.user_id.in_(ids),
                NotificationPreference.community_challenges == False,  # noqa: E712
            )
            return set(self.db.exec(stmt).all())
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Bildirim tercihleri alınamadı: {e}") from e

    def count(self) -> tuple[int, int]:
        """(abonelik sayısı, farklı kullanıcı sayısı)"""
        try:
            total = self.db.exec(select(func.count(PushSubscription.id))).one()
            users = self.db.exec(select(func.count(func.distinct(PushSubscription.user_id)))).one()
            return int(total or 0), int(users or 0)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Abonelik sayısı alınamadı: {e}") from e
